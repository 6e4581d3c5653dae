"""Hexagonal grid backend built on Uber's H3 index (h3-py >= 4)."""

from typing import List

import h3

from viewport_clustering.grids.base import Grid, GridError, check_coordinates
from viewport_clustering.models import LatLng


class H3Grid(Grid):
    """H3 hexagonal grid.

    Breakpoints pick the resolution whose hexagon diameter is closest to a
    ~150px marker footprint at each web-map zoom level (z0 -> res 0,
    z20 -> res 12).
    """

    name = "h3"
    min_resolution = 0
    max_resolution = 15
    zoom_breakpoints = (
        (0, 0),
        (4, 1),
        (6, 2),
        (7, 3),
        (9, 4),
        (10, 5),
        (12, 6),
        (13, 7),
        (14, 8),
        (16, 9),
        (17, 10),
        (18, 11),
        (20, 12),
    )

    def lat_lng_to_cell(self, lat: float, lng: float, resolution: int) -> str:
        lat, lng = check_coordinates(lat, lng)
        self.check_resolution(resolution)
        try:
            return h3.latlng_to_cell(lat, lng, resolution)
        except h3.H3BaseException as e:
            raise GridError(f"h3 could not index ({lat}, {lng}) at res {resolution}: {e}")

    def cell_to_lat_lng(self, cell: str) -> LatLng:
        self._check_cell(cell)
        lat, lng = h3.cell_to_latlng(cell)
        return LatLng(float(lat), float(lng))

    def neighbors(self, cell: str) -> List[str]:
        self._check_cell(cell)
        return [c for c in h3.grid_disk(cell, 1) if c != cell]

    def _check_cell(self, cell: str) -> None:
        if not isinstance(cell, str):
            raise GridError(f"Malformed h3 cell id: {cell!r}")
        try:
            valid = h3.is_valid_cell(cell)
        except (ValueError, TypeError, h3.H3BaseException):
            valid = False
        if not valid:
            raise GridError(f"Malformed h3 cell id: {cell!r}")
