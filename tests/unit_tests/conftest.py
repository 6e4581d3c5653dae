"""Pytest fixtures for viewport_clustering unit tests.

Provides a headless map host, grid backends, and point sets shared across
the clustering test modules.
"""

import pytest

from viewport_clustering import Bounds, GeoPoint, StaticMapHost, make_grid

RICHMOND = (37.5407, -77.4360)
DEFAULT_ZOOM = 10


@pytest.fixture
def h3_grid():
    """H3 grid backend."""
    return make_grid("h3")


@pytest.fixture
def s2_grid():
    """S2 grid backend."""
    return make_grid("s2")


@pytest.fixture(params=["h3", "s2"])
def any_grid(request):
    """Each grid backend in turn."""
    return make_grid(request.param)


@pytest.fixture
def richmond_bounds():
    """Viewport around Richmond, VA."""
    return Bounds(-77.7, 37.3, -77.2, 37.8)


@pytest.fixture
def host(richmond_bounds):
    """Headless host showing Richmond at zoom 10."""
    return StaticMapHost(richmond_bounds, zoom=DEFAULT_ZOOM)


def points_near_cell_center(grid, lat=RICHMOND[0], lng=RICHMOND[1], zoom=DEFAULT_ZOOM, n=4):
    """Points a few centimeters apart around the center of the cell holding (lat, lng).

    Anchoring on the cell center keeps all points inside one cell.
    """
    res = grid.resolution_for_zoom(zoom)
    center = grid.cell_to_lat_lng(grid.lat_lng_to_cell(lat, lng, res))
    offsets = [(0.0, 0.0), (1e-7, 0.0), (0.0, 1e-7), (-1e-7, -1e-7)]
    return [
        GeoPoint(center.lat + dlat, center.lng + dlng, payload={"idx": i})
        for i, (dlat, dlng) in enumerate(offsets[:n])
    ]


@pytest.fixture
def near_identical_points(h3_grid):
    """Four points at nearly identical coordinates inside one H3 cell."""
    return points_near_cell_center(h3_grid)


@pytest.fixture
def scattered_points():
    """Deterministic spread of points over the Richmond viewport and beyond."""
    import numpy as np

    rng = np.random.default_rng(42)
    lats = rng.uniform(37.0, 38.1, 200)
    lngs = rng.uniform(-78.0, -76.9, 200)
    return [GeoPoint(float(a), float(b), payload={"idx": i}) for i, (a, b) in enumerate(zip(lats, lngs))]


@pytest.fixture
def cell_center_points():
    """Factory building near-identical points around a grid cell center."""
    return points_near_cell_center
