"""Partition viewport points into clustering buckets.

Provides grid-cell bucketing at a zoom-derived resolution, an optional
no-clustering mode, and a screen-space variant that snaps projected pixel
coordinates into fixed-size squares.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from viewport_clustering.grids.base import Grid, GridError, check_coordinates
from viewport_clustering.models import Bounds, GeoPoint

logger = logging.getLogger(__name__)

Buckets = Dict[str, List[GeoPoint]]

PIXEL_PREFIX = "px:"
DEFAULT_PIXEL_CELL_SIZE = 150


def filter_in_bounds(
    points: Iterable[GeoPoint],
    bounds: Bounds,
    contains: Callable[[Bounds, GeoPoint], bool],
) -> List[GeoPoint]:
    """Keep points for which the host predicate reports containment."""
    return [p for p in points if contains(bounds, p)]


def singleton_buckets(points: Sequence[GeoPoint]) -> Buckets:
    """One bucket per point, keyed "point-<index>"; invalid coordinates are skipped."""
    buckets: Buckets = {}
    for index, point in enumerate(points):
        try:
            check_coordinates(point.lat, point.lng)
        except GridError as e:
            logger.warning("Skipping point %d: %s", index, e)
            continue
        buckets[f"point-{index}"] = [point]
    return buckets


def bucket_points(
    points: Sequence[GeoPoint],
    grid: Grid,
    resolution: int,
    omit_clustering: bool = False,
) -> Buckets:
    """Group points by the grid cell that contains them.

    Args:
        points: Viewport-filtered points.
        grid: Grid backend used for cell lookup.
        resolution: Grid resolution for this cycle.
        omit_clustering: If True, every point becomes its own bucket keyed
            by a synthetic "point-<index>" id.

    Returns:
        Insertion-ordered mapping of bucket id to member points. Buckets keep
        first-seen point order.

    Raises:
        GridError: If the resolution is out of range for the grid.

    Note:
        Points whose coordinates the grid rejects are skipped and logged.
    """
    if omit_clustering:
        return singleton_buckets(points)

    grid.check_resolution(resolution)
    buckets: Buckets = {}
    skipped = 0

    for index, point in enumerate(points):
        try:
            key = grid.lat_lng_to_cell(point.lat, point.lng, resolution)
        except GridError as e:
            skipped += 1
            logger.warning("Skipping point %d: %s", index, e)
            continue
        buckets.setdefault(key, []).append(point)

    logger.debug(
        "Bucketed %d points into %d buckets (grid=%s, res=%d, skipped=%d)",
        len(points) - skipped, len(buckets), grid.name, resolution, skipped,
    )
    return buckets


def bucket_by_pixel(
    points: Sequence[GeoPoint],
    project: Callable[[GeoPoint], Tuple[float, float]],
    cell_size: float = DEFAULT_PIXEL_CELL_SIZE,
    omit_clustering: bool = False,
) -> Buckets:
    """Group points by proximity in screen space.

    Each point is projected to pixels and snapped to a square of
    ``cell_size`` pixels; points sharing a square share a bucket.

    Args:
        points: Viewport-filtered points.
        project: Host projection from a point to (x, y) pixels.
        cell_size: Square edge in pixels (default: 150).
        omit_clustering: If True, every point becomes its own bucket.

    Returns:
        Insertion-ordered mapping of "px:<col>:<row>" ids to member points.
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")
    if omit_clustering:
        return singleton_buckets(points)

    kept: List[GeoPoint] = []
    xy: List[Tuple[float, float]] = []
    for index, point in enumerate(points):
        x, y = project(point)
        if not (np.isfinite(x) and np.isfinite(y)):
            logger.warning("Skipping point %d: non-finite projection (%s, %s)", index, x, y)
            continue
        kept.append(point)
        xy.append((x, y))

    buckets: Buckets = {}
    if not kept:
        return buckets

    cells = np.floor_divide(np.asarray(xy, dtype=float), cell_size).astype(np.int64)
    for point, (col, row) in zip(kept, cells.tolist()):
        buckets.setdefault(f"{PIXEL_PREFIX}{col}:{row}", []).append(point)
    return buckets


def is_pixel_bucket(key: str) -> bool:
    return key.startswith(PIXEL_PREFIX)
