"""Map host interface consumed by the clustering session.

The map host owns the camera, marker rendering, projections, and timers.
MapHost is the narrow interface the clustering core talks to, and
StaticMapHost is a headless in-memory implementation used for previews and
tests.
"""

import heapq
import itertools
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from viewport_clustering.models import Bounds, GeoPoint, LatLng

TILE_SIZE = 512


class MapHost(ABC):
    """Abstract base class for map widgets hosting a clustered layer."""

    @abstractmethod
    def get_viewport_bounds(self) -> Optional[Bounds]:
        """Return the visible extent, or None if the map is not ready."""

    def point_in_bounds(self, bounds: Bounds, point: GeoPoint) -> bool:
        """Viewport filter predicate (edges inclusive)."""
        return Bounds(*bounds).contains(point)

    @abstractmethod
    def get_zoom_level(self) -> float:
        """Return the current zoom level."""

    def project_to_screen(self, point: GeoPoint) -> Tuple[float, float]:
        """Project a point to (x, y) screen pixels.

        Raises:
            NotImplementedError: If the host has no screen projection.
        """
        raise NotImplementedError(f"{type(self).__name__} does not project to screen space")

    @abstractmethod
    def create_marker_handle(self, directive: Any) -> Any:
        """Build a detached marker for a render directive."""

    @abstractmethod
    def attach(self, handle: Any) -> None:
        """Add a marker to the map."""

    @abstractmethod
    def detach(self, handle: Any) -> None:
        """Remove a marker from the map."""

    @abstractmethod
    def set_position(self, handle: Any, position: LatLng) -> None:
        """Move a marker."""

    def bind_marker_event(self, handle: Any, event: str, callback: Callable[[], Any]) -> None:
        """Attach a listener ("click", "mouseover", "mouseout") to a marker."""

    def fit_bounds(self, bounds: Bounds, padding: float = 0) -> None:
        """Ask the map to fit its viewport to the bounds.

        Raises:
            NotImplementedError: If the host cannot move its camera.
        """
        raise NotImplementedError(f"{type(self).__name__} cannot fit bounds")

    @abstractmethod
    def on_viewport_changing(self, callback: Callable[[bool], Any]) -> Callable[[], None]:
        """Register a continuous viewport-change listener.

        The callback receives ``user_initiated`` (False for programmatic
        camera moves). Returns an unregister function.
        """

    @abstractmethod
    def on_viewport_settled(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Register a viewport-settled listener. Returns an unregister function."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Any]) -> Any:
        """Schedule ``callback`` after ``delay`` seconds; the handle has cancel()."""

    def now(self) -> float:
        """Monotonic clock in seconds used for throttling."""
        return time.monotonic()


def host_projects(host: Any) -> bool:
    """True if the host overrides MapHost.project_to_screen.

    Duck-typed hosts that do not subclass MapHost count as projecting when
    they define project_to_screen at all.
    """
    method = getattr(type(host), "project_to_screen", None)
    return method is not None and method is not MapHost.project_to_screen


def mercator_pixels(lat: float, lng: float, zoom: float, tile_size: int = TILE_SIZE) -> Tuple[float, float]:
    """Web Mercator world pixel coordinates of (lat, lng) at a zoom level."""
    world = tile_size * 2.0 ** zoom
    lat = max(min(lat, 85.05112878), -85.05112878)
    sin_lat = math.sin(math.radians(lat))
    x = (lng + 180.0) / 360.0 * world
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * world
    return x, y


@dataclass(eq=False)
class MarkerHandle:
    """In-memory marker used by StaticMapHost."""

    directive: Any
    position: Optional[LatLng] = None
    attached: bool = False
    listeners: Dict[str, Callable[[], Any]] = field(default_factory=dict)


def _unregister(listeners: List[Callable], callback: Callable) -> Callable[[], None]:
    def unregister() -> None:
        if callback in listeners:
            listeners.remove(callback)
    return unregister


class _Timer:
    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class StaticMapHost(MapHost):
    """Headless map host with a fixed viewport and a manual clock.

    Args:
        bounds: Visible extent (None simulates a map that is not ready).
        zoom: Zoom level.
        start_time: Initial clock value in seconds.

    Attributes:
        markers: Currently attached marker handles.
        created: Every handle ever created, in creation order.
        fit_requests: (bounds, padding) pairs passed to fit_bounds().
    """

    def __init__(self, bounds: Optional[Bounds] = None, zoom: float = 0, start_time: float = 0.0):
        self.bounds = Bounds(*bounds) if bounds is not None else None
        self.zoom = zoom
        self.markers: List[MarkerHandle] = []
        self.created: List[MarkerHandle] = []
        self.fit_requests: List[Tuple[Bounds, float]] = []
        self._changing: List[Callable[[bool], Any]] = []
        self._settled: List[Callable[[], Any]] = []
        self._clock = start_time
        self._timers: List[Tuple[float, int, _Timer]] = []
        self._seq = itertools.count()

    def set_view(self, bounds: Optional[Bounds], zoom: Optional[float] = None) -> None:
        self.bounds = Bounds(*bounds) if bounds is not None else None
        if zoom is not None:
            self.zoom = zoom

    def get_viewport_bounds(self) -> Optional[Bounds]:
        return self.bounds

    def get_zoom_level(self) -> float:
        return self.zoom

    def project_to_screen(self, point: GeoPoint) -> Tuple[float, float]:
        x, y = mercator_pixels(point.lat, point.lng, self.zoom)
        if self.bounds is None:
            return x, y
        x0, y0 = mercator_pixels(self.bounds.north, self.bounds.west, self.zoom)
        return x - x0, y - y0

    def create_marker_handle(self, directive: Any) -> MarkerHandle:
        handle = MarkerHandle(directive)
        self.created.append(handle)
        return handle

    def attach(self, handle: MarkerHandle) -> None:
        if not handle.attached:
            handle.attached = True
            self.markers.append(handle)

    def detach(self, handle: MarkerHandle) -> None:
        if handle.attached:
            handle.attached = False
            self.markers.remove(handle)

    def set_position(self, handle: MarkerHandle, position: LatLng) -> None:
        handle.position = LatLng(*position)

    def bind_marker_event(self, handle: MarkerHandle, event: str, callback: Callable[[], Any]) -> None:
        handle.listeners[event] = callback

    def fit_bounds(self, bounds: Bounds, padding: float = 0) -> None:
        self.fit_requests.append((Bounds(*bounds), padding))

    def trigger(self, handle: MarkerHandle, event: str) -> None:
        """Simulate a marker DOM event."""
        listener = handle.listeners.get(event)
        if listener is not None:
            listener()

    def on_viewport_changing(self, callback: Callable[[bool], Any]) -> Callable[[], None]:
        self._changing.append(callback)
        return _unregister(self._changing, callback)

    def on_viewport_settled(self, callback: Callable[[], Any]) -> Callable[[], None]:
        self._settled.append(callback)
        return _unregister(self._settled, callback)

    @property
    def listener_count(self) -> int:
        return len(self._changing) + len(self._settled)

    def emit_changing(self, user_initiated: bool = True) -> None:
        for callback in list(self._changing):
            callback(user_initiated)

    def emit_settled(self) -> None:
        for callback in list(self._settled):
            callback()

    def now(self) -> float:
        return self._clock

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _Timer:
        timer = _Timer(self._clock + delay, callback)
        heapq.heappush(self._timers, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running timers that come due in order."""
        target = self._clock + seconds
        while self._timers and self._timers[0][0] <= target:
            due, _, timer = heapq.heappop(self._timers)
            self._clock = max(self._clock, due)
            if not timer.cancelled:
                timer.callback()
        self._clock = target
