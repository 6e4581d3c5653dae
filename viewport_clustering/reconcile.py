"""Reconcile freshly computed clusters against the markers already on the map.

Markers are matched by a content-derived key built from the rendering
relevant fields of a cluster (its resolved center and render directive).
Matching markers are kept as-is, stale ones are detached, and only the
remainder is created.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from viewport_clustering.models import Cluster, LatLng
from viewport_clustering.utils import canonical_json, hash_from_json

logger = logging.getLogger(__name__)

MarkerRegistry = Dict[str, Any]
DirectiveFn = Callable[[Cluster], Any]
BindFn = Callable[[str, Any], None]


def canonical_directive(value: Any) -> Any:
    """Reduce a render directive to JSON-encodable values.

    Mappings get string keys, sequences become lists, and any other
    non-primitive object is replaced by its repr(). Objects without a
    stable repr() therefore get a new marker on every cycle.
    """
    if isinstance(value, Mapping):
        return {str(k): canonical_directive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonical_directive(v) for v in value]
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    return repr(value)


def reconciliation_key(center: LatLng, directive: Any) -> str:
    """Deterministic key for a rendered marker.

    Args:
        center: Resolved cluster center.
        directive: Render directive returned by the caller (None, a string,
            a number, a list, or a mapping).

    Returns:
        40-character SHA-1 hex digest of the canonical JSON of the fields
        ``lat``, ``lng`` and ``directive``.

    Note:
        Mapping directives are serialized with sorted keys, so the key does
        not depend on insertion order. See canonical_directive for values
        JSON cannot encode.
    """
    fields = {
        "lat": float(center[0]),
        "lng": float(center[1]),
        "directive": canonical_directive(directive),
    }
    return hash_from_json(canonical_json(fields), length=None)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass.

    Attributes:
        registry: Marker registry to carry into the next cycle.
        created: Keys of markers created and attached this cycle.
        retained: Keys of markers kept from the previous cycle.
        removed: Keys of markers detached this cycle.
        clusters_by_key: Cluster currently represented by each key.
    """

    registry: MarkerRegistry
    created: List[str] = field(default_factory=list)
    retained: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    clusters_by_key: Dict[str, Cluster] = field(default_factory=dict)


def reconcile(
    clusters: Sequence[Cluster],
    registry: Mapping[str, Any],
    host,
    directive_for: DirectiveFn,
    bind: Optional[BindFn] = None,
) -> ReconcileResult:
    """Diff new clusters against the previous marker registry.

    Args:
        clusters: Clusters computed for this cycle.
        registry: Previous cycle's registry (key -> marker handle). Not
            mutated.
        host: Map host used to create, position, attach and detach markers.
        directive_for: Returns the render directive for a cluster.
        bind: Optional ``bind(key, handle)`` hook called for new markers
            that carry a directive, before they are attached.

    Returns:
        ReconcileResult with the new registry.

    Note:
        Two clusters of the same cycle with the same key collapse onto the
        first one; the registry never holds duplicate keys.
    """
    wanted: Dict[str, Tuple[Cluster, Any]] = {}
    for cluster in clusters:
        directive = directive_for(cluster)
        key = reconciliation_key(cluster.center, directive)
        if key in wanted:
            logger.debug("Cluster %s shares marker key with %s", cluster.id, wanted[key][0].id)
            continue
        wanted[key] = (cluster, directive)

    result = ReconcileResult(registry={})

    for key, handle in registry.items():
        if key not in wanted:
            host.detach(handle)
            result.removed.append(key)

    for key, (cluster, directive) in wanted.items():
        result.clusters_by_key[key] = cluster
        if key in registry:
            result.registry[key] = registry[key]
            result.retained.append(key)
            continue
        handle = host.create_marker_handle(directive)
        host.set_position(handle, cluster.center)
        if bind is not None and directive is not None:
            bind(key, handle)
        host.attach(handle)
        result.registry[key] = handle
        result.created.append(key)

    logger.debug(
        "Reconciled %d clusters: %d created, %d retained, %d removed",
        len(clusters), len(result.created), len(result.retained), len(result.removed),
    )
    return result


def clear_markers(registry: Mapping[str, Any], host) -> MarkerRegistry:
    """Detach every marker in the registry and return an empty registry."""
    for handle in registry.values():
        host.detach(handle)
    return {}
