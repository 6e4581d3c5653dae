"""Incremental marker clustering for interactive maps.

Groups geographic points into grid-cell clusters at a zoom-derived
resolution, resolves a visual center per cluster, and reconciles cluster
markers across recomputations so unchanged markers are kept in place.
"""

from viewport_clustering.bucketing import (
    bucket_by_pixel,
    bucket_points,
    filter_in_bounds,
    singleton_buckets,
)
from viewport_clustering.centers import (
    CenteringStrategy,
    resolve_center,
    resolve_centers,
    weighted_centroid,
)
from viewport_clustering.config import (
    ClusterOptions,
    default_marker_directive,
    load_config,
    validate_config,
)
from viewport_clustering.grids import Grid, GridError, GridKind, H3Grid, S2Grid, make_grid
from viewport_clustering.host import MapHost, MarkerHandle, StaticMapHost
from viewport_clustering.layer import ClusteredLayer, add_clustered_layer
from viewport_clustering.models import Bounds, Cluster, GeoPoint, LatLng, as_point
from viewport_clustering.reconcile import (
    ReconcileResult,
    clear_markers,
    reconcile,
    reconciliation_key,
)
from viewport_clustering.scheduler import Debounce, Throttle, ViewportScheduler
from viewport_clustering.utils import (
    canonical_json,
    clusters_to_records,
    hash_from_json,
    load_points_df,
    points_from_dataframe,
    validate_coordinates,
    write_clusters_json,
)

__all__ = [
    "Bounds",
    "Cluster",
    "ClusterOptions",
    "ClusteredLayer",
    "CenteringStrategy",
    "Debounce",
    "GeoPoint",
    "Grid",
    "GridError",
    "GridKind",
    "H3Grid",
    "LatLng",
    "MapHost",
    "MarkerHandle",
    "ReconcileResult",
    "S2Grid",
    "StaticMapHost",
    "Throttle",
    "ViewportScheduler",
    "add_clustered_layer",
    "as_point",
    "bucket_by_pixel",
    "bucket_points",
    "canonical_json",
    "clear_markers",
    "clusters_to_records",
    "default_marker_directive",
    "filter_in_bounds",
    "hash_from_json",
    "load_config",
    "load_points_df",
    "make_grid",
    "points_from_dataframe",
    "reconcile",
    "reconciliation_key",
    "resolve_center",
    "resolve_centers",
    "singleton_buckets",
    "validate_config",
    "validate_coordinates",
    "weighted_centroid",
    "write_clusters_json",
]
