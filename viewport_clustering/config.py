"""Configuration management for clustered map layers.

Provides the default configuration, JSON loading with schema validation,
and the ClusterOptions object consumed by a clustering session.
"""
from __future__ import annotations

import copy
import json
import pathlib
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Optional, Tuple

from jsonschema import Draft202012Validator

from viewport_clustering.bucketing import DEFAULT_PIXEL_CELL_SIZE
from viewport_clustering.centers import DEFAULT_SMART_BLEND, CenteringStrategy
from viewport_clustering.grids import GridKind
from viewport_clustering.models import Cluster
from viewport_clustering.scheduler import DEFAULT_SETTLE_MS, DEFAULT_THROTTLE_MS

_DEFAULT = {
    "clustering": {
        "throttle_ms": DEFAULT_THROTTLE_MS,
        "settle_ms": DEFAULT_SETTLE_MS,
        "omit_clustering": False,
        "centering_strategy": CenteringStrategy.SMART.value,
        "grid": GridKind.H3.value,
        "bucketing": "grid",
        "pixel_cell_size": DEFAULT_PIXEL_CELL_SIZE,
        "smart_blend": list(DEFAULT_SMART_BLEND),
        "fit_padding": 40,
    },
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "clustering": {
            "type": "object",
            "properties": {
                "throttle_ms": {"type": "number", "minimum": 0},
                "settle_ms": {"type": "number", "minimum": 0},
                "omit_clustering": {"type": "boolean"},
                "centering_strategy": {"enum": [s.value for s in CenteringStrategy]},
                "grid": {"enum": [k.value for k in GridKind]},
                "bucketing": {"enum": ["grid", "pixel"]},
                "pixel_cell_size": {"type": "number", "exclusiveMinimum": 0},
                "smart_blend": {
                    "type": "array",
                    "items": {"type": "number", "exclusiveMinimum": 0},
                    "minItems": 2,
                    "maxItems": 2,
                },
                "fit_padding": {"type": "number", "minimum": 0},
            },
            "additionalProperties": False,
        },
    },
}

# Option names accepted in the camelCase form used by map widget APIs.
_ALIASES = {
    "throttleMs": "throttle_ms",
    "throttle": "throttle_ms",
    "settleMs": "settle_ms",
    "omitClustering": "omit_clustering",
    "centeringStrategy": "centering_strategy",
    "pixelCellSize": "pixel_cell_size",
    "smartBlend": "smart_blend",
    "fitPadding": "fit_padding",
    "createMarker": "create_marker",
    "onClick": "on_click",
    "onMouseOver": "on_mouse_over",
    "onMouseOut": "on_mouse_out",
}


def validate_config(config: dict) -> dict:
    """Validate a configuration dictionary against CONFIG_SCHEMA.

    Raises:
        ValueError: Listing every schema violation.
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors
        )
        raise ValueError(f"Invalid clustering configuration: {details}")
    return config


def load_config(path: str | None = "clustering_config.json") -> dict:
    """Load clustering configuration from JSON file.

    Loads user configuration file and merges with default configuration.
    User values override defaults for matching keys.

    Args:
        path: Path to configuration JSON file. If None or file doesn't exist,
            returns default configuration.

    Returns:
        dict: Merged, validated configuration dictionary.

    Raises:
        ValueError: If the merged configuration violates the schema.
    """
    merged = copy.deepcopy(_DEFAULT)
    p = pathlib.Path(path) if path else None
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            user = json.load(f)
        for k, v in user.items():
            if isinstance(v, dict) and k in merged:
                merged[k].update(v)
            else:
                merged[k] = v
    return validate_config(merged)


def default_marker_directive(cluster: Cluster) -> Optional[Dict[str, Any]]:
    """Render the point count for multi-point clusters, nothing for singletons."""
    if cluster.size == 1:
        return None
    return {"count": cluster.size}


@dataclass(frozen=True)
class ClusterOptions:
    """Options for a clustered layer.

    Attributes:
        throttle_ms: Minimum interval between recomputations while the
            viewport is changing (default: 200).
        settle_ms: Quiet period after the viewport settles (default: 100).
        omit_clustering: Render every point as its own marker.
        centering_strategy: "centroid", "cell-center", or "smart".
        grid: Grid backend ("h3" or "s2").
        bucketing: "grid" (cell ids) or "pixel" (screen-space squares).
        pixel_cell_size: Square size in pixels for pixel bucketing.
        smart_blend: (centroid, cell-center) weights for smart centering.
        fit_padding: Default padding for the click fit-bounds helper.
        create_marker: Cluster -> render directive (None renders the host's
            default marker).
        on_click: Called with (cluster, fit_bounds).
        on_mouse_over: Called with the cluster.
        on_mouse_out: Called with the cluster.
    """

    throttle_ms: float = DEFAULT_THROTTLE_MS
    settle_ms: float = DEFAULT_SETTLE_MS
    omit_clustering: bool = False
    centering_strategy: str = CenteringStrategy.SMART.value
    grid: str = GridKind.H3.value
    bucketing: str = "grid"
    pixel_cell_size: float = DEFAULT_PIXEL_CELL_SIZE
    smart_blend: Tuple[float, float] = DEFAULT_SMART_BLEND
    fit_padding: float = 40
    create_marker: Optional[Callable[[Cluster], Any]] = default_marker_directive
    on_click: Optional[Callable[..., Any]] = None
    on_mouse_over: Optional[Callable[[Cluster], Any]] = None
    on_mouse_out: Optional[Callable[[Cluster], Any]] = None

    @classmethod
    def from_config(cls, config: Optional[dict] = None, **overrides) -> "ClusterOptions":
        """Build options from a load_config() dictionary plus keyword overrides.

        camelCase option names (``throttleMs``, ``onClick``...) are accepted.

        Raises:
            ValueError: On schema violations or unknown option names.
        """
        section = dict((config or {}).get("clustering", {}))
        if "smart_blend" in section:
            section["smart_blend"] = tuple(section["smart_blend"])
        return cls().with_overrides(**section, **overrides)

    def with_overrides(self, **overrides) -> "ClusterOptions":
        """Return a copy with options replaced; unknown names raise ValueError."""
        known = {f.name for f in fields(self)}
        normalized = {}
        for name, value in overrides.items():
            name = _ALIASES.get(name, name)
            if name not in known:
                raise ValueError(f"Unknown clustering option: {name}. Must be one of: {sorted(known)}")
            normalized[name] = value
        return replace(self, **normalized).validate()

    def validate(self) -> "ClusterOptions":
        """Check option values.

        Raises:
            ValueError: If any option is out of range or names an unknown
                grid, strategy, or bucketing mode.
        """
        if self.throttle_ms < 0:
            raise ValueError(f"throttle_ms must be >= 0, got {self.throttle_ms}")
        if self.settle_ms < 0:
            raise ValueError(f"settle_ms must be >= 0, got {self.settle_ms}")
        strategy = CenteringStrategy.parse(self.centering_strategy)
        try:
            GridKind(self.grid)
        except ValueError:
            raise ValueError(
                f"Unknown grid: {self.grid}. Must be one of: {', '.join(k.value for k in GridKind)}"
            )
        if self.bucketing not in ("grid", "pixel"):
            raise ValueError(f"Unknown bucketing: {self.bucketing}. Must be one of: grid, pixel")
        if self.bucketing == "pixel":
            if self.pixel_cell_size <= 0:
                raise ValueError(f"pixel_cell_size must be positive, got {self.pixel_cell_size}")
            if strategy is CenteringStrategy.CELL_CENTER:
                raise ValueError("centering_strategy 'cell-center' requires grid bucketing")
        if len(self.smart_blend) != 2 or min(self.smart_blend) <= 0:
            raise ValueError(f"smart_blend must be two positive weights, got {self.smart_blend}")
        if self.fit_padding < 0:
            raise ValueError(f"fit_padding must be >= 0, got {self.fit_padding}")
        return self
