"""Clustered marker layer bound to a map host.

A ClusteredLayer owns the marker registry and the viewport scheduler. Each
compute cycle filters points to the viewport, buckets them, resolves
cluster centers, and reconciles the result against the markers from the
previous cycle.
"""

import logging
from functools import partial
from typing import Any, Dict, Iterable, List, Optional

from viewport_clustering.bucketing import bucket_by_pixel, bucket_points, filter_in_bounds
from viewport_clustering.centers import CenteringStrategy, resolve_centers
from viewport_clustering.config import ClusterOptions
from viewport_clustering.grids import make_grid
from viewport_clustering.host import host_projects
from viewport_clustering.models import Bounds, Cluster, GeoPoint, as_point
from viewport_clustering.reconcile import (
    MarkerRegistry,
    ReconcileResult,
    clear_markers,
    reconcile,
)
from viewport_clustering.scheduler import ViewportScheduler

logger = logging.getLogger(__name__)


def _no_directive(cluster: Cluster) -> None:
    return None


def coerce_points(records: Iterable[Any]) -> List[GeoPoint]:
    """Convert caller records to GeoPoints, skipping records without usable coordinates."""
    points: List[GeoPoint] = []
    for index, record in enumerate(records):
        try:
            points.append(as_point(record))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping point record %d: %s", index, e)
    return points


class ClusteredLayer:
    """Clustering session for one map host.

    Args:
        host: Map host (see viewport_clustering.host.MapHost).
        points: Point records (GeoPoint, mappings with lat/lng, or pairs).
        options: Layer options (default: ClusterOptions()).

    Raises:
        ValueError: On invalid options, or pixel bucketing on a host without
            a screen projection. Nothing is registered on the host in that
            case. Malformed point records are skipped and logged.
    """

    def __init__(self, host, points: Iterable[Any], options: Optional[ClusterOptions] = None):
        self.options = (options or ClusterOptions()).validate()
        self.strategy = CenteringStrategy.parse(self.options.centering_strategy)
        self.grid = make_grid(self.options.grid)
        if self.options.bucketing == "pixel" and not host_projects(host):
            raise ValueError(
                f"bucketing 'pixel' requires a host with project_to_screen, "
                f"{type(host).__name__} has none"
            )
        self.host = host
        self.points: List[GeoPoint] = coerce_points(points)
        self.registry: MarkerRegistry = {}
        self.clusters: List[Cluster] = []
        self.resolution: Optional[int] = None
        self._clusters_by_key: Dict[str, Cluster] = {}
        self._scheduler: Optional[ViewportScheduler] = None

    @property
    def attached(self) -> bool:
        return self._scheduler is not None and not self._scheduler.closed

    def start(self) -> "ClusteredLayer":
        """Register viewport triggers and run the initial compute."""
        if self._scheduler is not None:
            raise RuntimeError("Layer already started")
        self._scheduler = ViewportScheduler(
            self.compute,
            self.host,
            throttle_ms=self.options.throttle_ms,
            settle_ms=self.options.settle_ms,
        ).start()
        self.compute()
        return self

    def compute(self) -> Optional[ReconcileResult]:
        """Run one full cycle: filter, bucket, center, reconcile.

        Returns:
            ReconcileResult, or None when the host has no viewport yet.
        """
        bounds = self.host.get_viewport_bounds()
        if bounds is None:
            logger.debug("Viewport not ready; skipping compute")
            return None

        visible = filter_in_bounds(self.points, bounds, self.host.point_in_bounds)

        if self.options.bucketing == "pixel":
            self.resolution = None
            buckets = bucket_by_pixel(
                visible,
                self.host.project_to_screen,
                cell_size=self.options.pixel_cell_size,
                omit_clustering=self.options.omit_clustering,
            )
            grid = None
        else:
            self.resolution = self.grid.resolution_for_zoom(self.host.get_zoom_level())
            buckets = bucket_points(
                visible, self.grid, self.resolution, omit_clustering=self.options.omit_clustering
            )
            grid = self.grid

        self.clusters = resolve_centers(buckets, self.strategy, grid, self.options.smart_blend)

        result = reconcile(
            self.clusters,
            self.registry,
            self.host,
            self.options.create_marker or _no_directive,
            bind=self._bind_listeners,
        )
        self.registry = result.registry
        self._clusters_by_key = result.clusters_by_key

        logger.debug(
            "Computed %d clusters from %d/%d visible points (res=%s)",
            len(self.clusters), len(visible), len(self.points), self.resolution,
        )
        return result

    def set_points(self, points: Iterable[Any]) -> Optional[ReconcileResult]:
        """Replace the point set and recompute immediately."""
        self.points = coerce_points(points)
        return self.compute()

    @property
    def clusters_by_key(self) -> Dict[str, Cluster]:
        """Marker key -> cluster for the last cycle."""
        return dict(self._clusters_by_key)

    def cluster_for_key(self, key: str) -> Optional[Cluster]:
        """Cluster currently rendered by the marker with this key."""
        return self._clusters_by_key.get(key)

    def fit_cluster(self, cluster: Cluster, padding: Optional[float] = None) -> None:
        """Ask the host to fit its viewport to the cluster's points."""
        if padding is None:
            padding = self.options.fit_padding
        self.host.fit_bounds(Bounds.from_points(cluster.points), padding)

    def detach(self, clear: bool = False) -> None:
        """Unregister triggers and cancel pending recomputation.

        Args:
            clear: Also remove every marker from the map.
        """
        if self._scheduler is not None:
            self._scheduler.close()
        if clear:
            self.registry = clear_markers(self.registry, self.host)
            self._clusters_by_key = {}

    def _bind_listeners(self, key: str, handle: Any) -> None:
        if self.options.on_click is not None:
            self.host.bind_marker_event(handle, "click", partial(self._dispatch_click, key))
        if self.options.on_mouse_over is not None:
            self.host.bind_marker_event(
                handle, "mouseover", partial(self._dispatch, key, self.options.on_mouse_over)
            )
        if self.options.on_mouse_out is not None:
            self.host.bind_marker_event(
                handle, "mouseout", partial(self._dispatch, key, self.options.on_mouse_out)
            )

    def _dispatch_click(self, key: str) -> None:
        cluster = self._clusters_by_key.get(key)
        if cluster is None:
            return
        self.options.on_click(cluster, partial(self.fit_cluster, cluster))

    def _dispatch(self, key: str, callback) -> None:
        cluster = self._clusters_by_key.get(key)
        if cluster is not None:
            callback(cluster)


def add_clustered_layer(
    host,
    points: Iterable[Any],
    options: Optional[ClusterOptions] = None,
    **overrides,
) -> ClusteredLayer:
    """Create a clustered layer on a map host and compute it once.

    Args:
        host: Map host.
        points: Point records.
        options: Base options (default: ClusterOptions()).
        **overrides: Option overrides, snake_case or camelCase
            (e.g. ``throttleMs=100``, ``on_click=...``).

    Returns:
        Started ClusteredLayer. Call ``detach()`` to tear it down.

    Raises:
        ValueError: On configuration errors, before any trigger is registered.

    Examples:
        >>> layer = add_clustered_layer(host, points, centering_strategy="centroid")
        >>> layer.detach()
    """
    options = options or ClusterOptions()
    if overrides:
        options = options.with_overrides(**overrides)
    return ClusteredLayer(host, points, options).start()
