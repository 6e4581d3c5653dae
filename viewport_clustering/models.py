"""Core data model for viewport clustering.

Defines the point, coordinate, bounds, and cluster types shared by the
bucketing, centering, and reconciliation stages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional, Tuple

from shapely.geometry import MultiPoint


class LatLng(NamedTuple):
    """Geographic coordinate in decimal degrees."""

    lat: float
    lng: float


@dataclass(frozen=True)
class GeoPoint:
    """Input point owned by the caller.

    Attributes:
        lat: Latitude in decimal degrees.
        lng: Longitude in decimal degrees.
        weight: Optional positive weight used by the centroid (default: 1).
        payload: Arbitrary caller-defined fields carried through untouched.
    """

    lat: float
    lng: float
    weight: Optional[float] = None
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def latlng(self) -> LatLng:
        return LatLng(self.lat, self.lng)


def as_point(obj: Any) -> GeoPoint:
    """Coerce a caller record into a GeoPoint.

    Accepts a GeoPoint, a mapping with ``lat`` and ``lng`` (or ``lon``) keys,
    or a ``(lat, lng)`` pair. Remaining mapping keys become the payload.

    Raises:
        ValueError: If no coordinates can be extracted.
    """
    if isinstance(obj, GeoPoint):
        return obj
    if isinstance(obj, Mapping):
        record = dict(obj)
        lng_key = "lng" if "lng" in record else "lon"
        if "lat" not in record or lng_key not in record:
            raise ValueError(f"Point record needs 'lat' and 'lng' (or 'lon') keys, got: {sorted(record)}")
        lat = record.pop("lat")
        lng = record.pop(lng_key)
        weight = record.pop("weight", None)
        return GeoPoint(float(lat), float(lng), weight, record)
    if isinstance(obj, (tuple, list)) and len(obj) == 2:
        return GeoPoint(float(obj[0]), float(obj[1]))
    raise ValueError(f"Cannot interpret {obj!r} as a point")


class Bounds(NamedTuple):
    """Geographic extent as (west, south, east, north) in degrees.

    ``west > east`` denotes a box crossing the antimeridian.
    """

    west: float
    south: float
    east: float
    north: float

    def contains(self, point: GeoPoint) -> bool:
        """Return True if the point lies inside or on the edge of the bounds."""
        if not self.south <= point.lat <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= point.lng <= self.east
        return point.lng >= self.west or point.lng <= self.east

    @classmethod
    def from_points(cls, points: Iterable[GeoPoint]) -> "Bounds":
        """Smallest bounds covering all points."""
        coords = [(p.lng, p.lat) for p in points]
        if not coords:
            raise ValueError("Cannot compute bounds of an empty point set")
        minx, miny, maxx, maxy = MultiPoint(coords).bounds
        return cls(minx, miny, maxx, maxy)


@dataclass(frozen=True)
class Cluster:
    """Group of points rendered as a single marker for one compute cycle.

    Attributes:
        id: Owning cell identifier, or a synthetic per-point id.
        center: Resolved visual anchor.
        points: Member points in first-seen order (never empty).
    """

    id: str
    center: LatLng
    points: Tuple[GeoPoint, ...]

    def __post_init__(self):
        if not self.points:
            raise ValueError(f"Cluster {self.id} must contain at least one point")

    @property
    def size(self) -> int:
        return len(self.points)

    def bounds(self) -> Bounds:
        return Bounds.from_points(self.points)
