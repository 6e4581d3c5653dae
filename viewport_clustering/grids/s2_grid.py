"""Quad-sphere grid backend built on the S2 geometry index (s2sphere)."""

from typing import List

import s2sphere

from viewport_clustering.grids.base import Grid, GridError, check_coordinates
from viewport_clustering.models import LatLng


class S2Grid(Grid):
    """S2 quad-sphere grid.

    Cell ids are S2 tokens. An S2 cell at level L is roughly as wide as a
    ~150px marker footprint at zoom L + 1, so levels step one per zoom level
    from z2 up to level 20.
    """

    name = "s2"
    min_resolution = 0
    max_resolution = 30
    zoom_breakpoints = ((0, 0),) + tuple((z, z - 1) for z in range(2, 22))

    def lat_lng_to_cell(self, lat: float, lng: float, resolution: int) -> str:
        lat, lng = check_coordinates(lat, lng)
        self.check_resolution(resolution)
        leaf = s2sphere.CellId.from_lat_lng(s2sphere.LatLng.from_degrees(lat, lng))
        return leaf.parent(resolution).to_token()

    def cell_to_lat_lng(self, cell: str) -> LatLng:
        ll = self._parse(cell).to_lat_lng()
        return LatLng(ll.lat().degrees, ll.lng().degrees)

    def neighbors(self, cell: str) -> List[str]:
        cell_id = self._parse(cell)
        return [n.to_token() for n in cell_id.get_all_neighbors(cell_id.level())]

    def _parse(self, cell: str) -> s2sphere.CellId:
        if not isinstance(cell, str) or not cell:
            raise GridError(f"Malformed s2 cell token: {cell!r}")
        try:
            cell_id = s2sphere.CellId.from_token(cell)
        except ValueError as e:
            raise GridError(f"Malformed s2 cell token: {cell!r} ({e})")
        if not cell_id.is_valid():
            raise GridError(f"Malformed s2 cell token: {cell!r}")
        return cell_id
