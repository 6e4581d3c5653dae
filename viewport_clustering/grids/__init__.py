"""Pluggable spatial grids for cell-based clustering.

Provides a common Grid interface with H3 (hexagonal) and S2 (quad-sphere)
backends, selected explicitly by GridKind.
"""

from enum import Enum
from typing import Union

from viewport_clustering.grids.base import Grid, GridError, check_coordinates
from viewport_clustering.grids.h3_grid import H3Grid
from viewport_clustering.grids.s2_grid import S2Grid


class GridKind(str, Enum):
    H3 = "h3"
    S2 = "s2"


_GRIDS = {
    GridKind.H3: H3Grid,
    GridKind.S2: S2Grid,
}


def make_grid(kind: Union[str, GridKind]) -> Grid:
    """Factory function to create grid backends.

    Args:
        kind: Grid name ("h3" or "s2") or GridKind member.

    Returns:
        Grid instance.

    Raises:
        ValueError: If the grid name is unknown.

    Examples:
        >>> make_grid("h3").name
        'h3'
    """
    try:
        kind = GridKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown grid: {kind}. Must be one of: {', '.join(k.value for k in GridKind)}"
        )
    return _GRIDS[kind]()


__all__ = [
    "Grid",
    "GridError",
    "GridKind",
    "H3Grid",
    "S2Grid",
    "check_coordinates",
    "make_grid",
]
