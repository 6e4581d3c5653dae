"""Resolve a visual anchor point for each bucket.

Three policies are supported:
    - centroid: weighted average of member coordinates.
    - cell-center: geographic center of the owning grid cell.
    - smart: exact position for singletons; otherwise the centroid, pulled
      toward the cell center when an adjacent cell is also populated.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

import numpy as np

from viewport_clustering.bucketing import Buckets, is_pixel_bucket
from viewport_clustering.grids.base import Grid
from viewport_clustering.models import Cluster, GeoPoint, LatLng

logger = logging.getLogger(__name__)

# Relative (centroid, cell-center) weights for the smart policy blend.
DEFAULT_SMART_BLEND: Tuple[float, float] = (3.0, 1.0)


class CenteringStrategy(str, Enum):
    CENTROID = "centroid"
    CELL_CENTER = "cell-center"
    SMART = "smart"

    @classmethod
    def parse(cls, value: Union[str, "CenteringStrategy"]) -> "CenteringStrategy":
        """Parse a policy name.

        Raises:
            ValueError: If the name is not a known policy.
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown centering strategy: {value}. "
                f"Must be one of: {', '.join(s.value for s in cls)}"
            )


def point_weight(point: GeoPoint) -> float:
    """Return a point's centroid weight (default 1).

    Raises:
        ValueError: If the weight is not a positive finite number.
    """
    if point.weight is None:
        return 1.0
    weight = float(point.weight)
    if not np.isfinite(weight) or weight <= 0:
        raise ValueError(f"Point weight must be positive, got {point.weight!r}")
    return weight


def unwrap_longitudes(lngs: Iterable[float], reference: float) -> np.ndarray:
    """Shift longitudes by 360 degrees so none is more than 180 degrees from ``reference``."""
    lngs = np.asarray(list(lngs), dtype=float)
    delta = lngs - reference
    return np.where(delta > 180.0, lngs - 360.0, np.where(delta < -180.0, lngs + 360.0, lngs))


def wrap_longitude(lng: float) -> float:
    """Bring a longitude back into [-180, 180]."""
    if lng > 180.0:
        return lng - 360.0
    if lng < -180.0:
        return lng + 360.0
    return lng


def weighted_centroid(points: Sequence[GeoPoint]) -> LatLng:
    """Weighted average of member coordinates.

    Args:
        points: Non-empty sequence of points.

    Returns:
        Centroid as LatLng. A single point returns its own coordinates
        exactly.
        Longitudes are averaged on the side of the antimeridian nearest
        the first point.

    Raises:
        ValueError: If points is empty or any weight is not positive.
    """
    if not points:
        raise ValueError("Cannot compute the centroid of an empty point set")
    if len(points) == 1:
        point_weight(points[0])
        return LatLng(float(points[0].lat), float(points[0].lng))
    lats = np.array([p.lat for p in points], dtype=float)
    lngs = unwrap_longitudes([p.lng for p in points], float(points[0].lng))
    weights = np.array([point_weight(p) for p in points], dtype=float)
    lat = np.average(lats, weights=weights)
    lng = np.average(lngs, weights=weights)
    return LatLng(float(lat), wrap_longitude(float(lng)))


def blend(a: LatLng, b: LatLng, weights: Tuple[float, float] = DEFAULT_SMART_BLEND) -> LatLng:
    """Weighted blend of two coordinates, ``a`` weighted by weights[0]."""
    wa, wb = weights
    total = wa + wb
    b_lng = float(unwrap_longitudes([b.lng], a.lng)[0])
    return LatLng(
        (a.lat * wa + b.lat * wb) / total,
        wrap_longitude((a.lng * wa + b_lng * wb) / total),
    )


def _has_cell(key: str, grid: Optional[Grid]) -> bool:
    return grid is not None and not is_pixel_bucket(key) and not key.startswith("point-")


def resolve_center(
    key: str,
    points: Sequence[GeoPoint],
    strategy: CenteringStrategy,
    grid: Optional[Grid] = None,
    populated: Iterable[str] = (),
    smart_blend: Tuple[float, float] = DEFAULT_SMART_BLEND,
) -> LatLng:
    """Compute the anchor of one bucket.

    Args:
        key: Bucket id (grid cell id, "point-<i>", or "px:<col>:<row>").
        points: Bucket members.
        strategy: Centering policy.
        grid: Grid that produced ``key`` (None for screen-space buckets).
        populated: All bucket ids of the current cycle, used by smart.
        smart_blend: (centroid, cell-center) weights for smart.

    Raises:
        ValueError: For bad weights or cell-center without a grid cell.
        GridError: If the grid cannot decode ``key``.
    """
    for point in points:
        point_weight(point)

    if strategy is CenteringStrategy.CENTROID:
        return weighted_centroid(points)

    if strategy is CenteringStrategy.CELL_CENTER:
        if _has_cell(key, grid):
            return grid.cell_to_lat_lng(key)
        if len(points) == 1:
            return points[0].latlng
        raise ValueError(f"Bucket {key} has no grid cell to center on")

    if len(points) == 1:
        return points[0].latlng
    centroid = weighted_centroid(points)
    if not _has_cell(key, grid):
        return centroid
    populated = populated if isinstance(populated, (set, frozenset, dict)) else set(populated)
    if any(n in populated for n in grid.neighbors(key)):
        return blend(centroid, grid.cell_to_lat_lng(key), smart_blend)
    return centroid


def resolve_centers(
    buckets: Buckets,
    strategy: CenteringStrategy = CenteringStrategy.SMART,
    grid: Optional[Grid] = None,
    smart_blend: Tuple[float, float] = DEFAULT_SMART_BLEND,
) -> List[Cluster]:
    """Turn buckets into clusters with resolved centers.

    Buckets whose center cannot be computed are skipped and logged so one
    malformed bucket does not blank the whole layer.

    Returns:
        Clusters in bucket order.
    """
    populated: Set[str] = set(buckets)
    clusters: List[Cluster] = []
    for key, points in buckets.items():
        if not points:
            continue
        try:
            center = resolve_center(key, points, strategy, grid, populated, smart_blend)
        except ValueError as e:
            logger.warning("Skipping cluster %s: %s", key, e)
            continue
        clusters.append(Cluster(id=key, center=center, points=tuple(points)))
    return clusters
