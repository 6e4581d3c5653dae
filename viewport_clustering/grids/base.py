"""Base grid interface for cell-based clustering.

Defines the abstract base class Grid that every spatial index backend must
implement: coordinate-to-cell conversion, cell centers, immediate neighbors,
and a zoom-to-resolution step function.
"""

import math
from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import List, Tuple

from viewport_clustering.models import LatLng


class GridError(ValueError):
    """Raised for out-of-range resolutions, malformed cell ids, or bad coordinates."""


class Grid(ABC):
    """Abstract base class for hierarchical spatial grids.

    Cell identifiers are opaque strings. Identifiers from different grid
    implementations are not interchangeable.

    Attributes:
        name: Short backend name ("h3", "s2").
        min_resolution: Smallest resolution produced by resolution_for_zoom().
        max_resolution: Largest resolution produced by resolution_for_zoom().
        zoom_breakpoints: Ordered (min_zoom, resolution) steps.
    """

    name: str = ""
    min_resolution: int = 0
    max_resolution: int = 0
    zoom_breakpoints: Tuple[Tuple[float, int], ...] = ()

    @abstractmethod
    def lat_lng_to_cell(self, lat: float, lng: float, resolution: int) -> str:
        """Return the id of the cell containing (lat, lng) at a resolution.

        Raises:
            GridError: If coordinates are invalid or resolution out of range.
        """

    @abstractmethod
    def cell_to_lat_lng(self, cell: str) -> LatLng:
        """Return the geographic center of a cell.

        Raises:
            GridError: If the id is malformed.
        """

    @abstractmethod
    def neighbors(self, cell: str) -> List[str]:
        """Return the immediate ring (distance 1) around a cell, excluding it.

        Raises:
            GridError: If the id is malformed.
        """

    def resolution_for_zoom(self, zoom: float) -> int:
        """Map a map zoom level to a grid resolution.

        Zooms below the first breakpoint map to the first resolution and zooms
        beyond the last breakpoint map to the last one.

        Raises:
            GridError: If zoom is not a finite number.
        """
        try:
            zoom = float(zoom)
        except (TypeError, ValueError):
            raise GridError(f"Zoom must be a number, got {zoom!r}")
        if not math.isfinite(zoom):
            raise GridError(f"Zoom must be finite, got {zoom}")
        starts = [z for z, _ in self.zoom_breakpoints]
        idx = max(bisect_right(starts, zoom) - 1, 0)
        return self.zoom_breakpoints[idx][1]

    def check_resolution(self, resolution: int) -> int:
        if isinstance(resolution, bool) or not isinstance(resolution, int):
            raise GridError(f"{self.name} resolution must be an integer, got {resolution!r}")
        if not self.min_resolution <= resolution <= self.max_resolution:
            raise GridError(
                f"{self.name} resolution {resolution} out of range "
                f"[{self.min_resolution}, {self.max_resolution}]"
            )
        return resolution


def check_coordinates(lat: float, lng: float) -> Tuple[float, float]:
    """Validate a coordinate pair.

    Returns:
        (lat, lng) as floats.

    Raises:
        GridError: If either value is non-finite or out of range.
    """
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise GridError(f"Coordinates must be numbers, got ({lat!r}, {lng!r})")
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise GridError(f"Coordinates must be finite, got ({lat}, {lng})")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise GridError(f"Coordinates out of range: ({lat}, {lng})")
    return lat, lng
