"""Geometry data model: points, rings, polygons and derived extents.

All coordinates are WGS 84 decimal degrees.  ``GeoPoint`` stores
``(lat, lon)`` in that order; helpers that talk to GeoJSON, pyproj or
shapely convert to ``(lon, lat)`` explicitly via ``as_lonlat()``.

Every type here is a frozen dataclass: stages hand their output to the
next stage and nothing is mutated after construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from coverage_grid.core.constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_DISTINCT_VERTICES,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from coverage_grid.core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CoordinateValidationError(ValidationError):
    """Raised when a coordinate is outside WGS 84 bounds or not finite."""

    default_stage = "models"
    default_code = "COORDINATE_INVALID"


class GeometryValidationError(ValidationError):
    """Raised when a ring or polygon is structurally unusable."""

    default_stage = "models"
    default_code = "GEOMETRY_INVALID"


def validate_wgs84_coordinate(lat: float, lon: float) -> None:
    """Validate a single latitude/longitude pair.

    Raises:
        CoordinateValidationError: If either value is not finite or out of range.
    """
    if not (math.isfinite(lat) and math.isfinite(lon)):
        msg = f"Coordinate ({lat}, {lon}) is not finite"
        raise CoordinateValidationError(msg)
    if not MIN_LATITUDE <= lat <= MAX_LATITUDE:
        msg = f"Latitude {lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}]"
        raise CoordinateValidationError(msg)
    if not MIN_LONGITUDE <= lon <= MAX_LONGITUDE:
        msg = f"Longitude {lon} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}]"
        raise CoordinateValidationError(msg)


# ---------------------------------------------------------------------------
# Points and extents
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS 84 position.

    Attributes:
        lat: Latitude in decimal degrees, ``[-90, 90]``.
        lon: Longitude in decimal degrees, ``[-180, 180]``.
    """

    lat: float
    lon: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "lat", float(self.lat))
        object.__setattr__(self, "lon", float(self.lon))
        validate_wgs84_coordinate(self.lat, self.lon)

    def as_lonlat(self) -> tuple[float, float]:
        """Return ``(lon, lat)`` for GeoJSON / pyproj / shapely consumers."""
        return (self.lon, self.lat)

    @classmethod
    def from_lonlat(cls, lon: float, lat: float) -> GeoPoint:
        return cls(lat=lat, lon=lon)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned geographic extent ``(min_lat, min_lon, max_lat, max_lon)``."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def __post_init__(self) -> None:
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            msg = (
                f"Bounding box minimum exceeds maximum: "
                f"lat [{self.min_lat}, {self.max_lat}], lon [{self.min_lon}, {self.max_lon}]"
            )
            raise GeometryValidationError(msg)

    @classmethod
    def of_points(cls, points: Iterable[GeoPoint]) -> BoundingBox:
        """Return the tight extent of *points*.

        Raises:
            GeometryValidationError: If *points* is empty.
        """
        lats: list[float] = []
        lons: list[float] = []
        for point in points:
            lats.append(point.lat)
            lons.append(point.lon)
        if not lats:
            msg = "Cannot compute a bounding box of zero points"
            raise GeometryValidationError(msg)
        return cls(min(lats), min(lons), max(lats), max(lons))

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_lat, self.min_lon, self.max_lat, self.max_lon)


# ---------------------------------------------------------------------------
# Rings and polygons
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Ring:
    """A closed sequence of positions (first == last).

    Unclosed input is closed on construction.  At least three distinct
    positions are required.

    Attributes:
        points: The closed position sequence.
    """

    points: tuple[GeoPoint, ...]

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if points and points[0] != points[-1]:
            points = (*points, points[0])
        if len(set(points)) < MIN_DISTINCT_VERTICES:
            msg = (
                f"Ring has {len(set(points))} distinct point(s), "
                f"need at least {MIN_DISTINCT_VERTICES}"
            )
            raise GeometryValidationError(msg)
        object.__setattr__(self, "points", points)

    @classmethod
    def from_lonlat(cls, coords: Iterable[tuple[float, float]]) -> Ring:
        """Build a ring from ``(lon, lat)`` pairs (GeoJSON order)."""
        return cls(tuple(GeoPoint(lat=lat, lon=lon) for lon, lat in coords))

    @property
    def vertices(self) -> tuple[GeoPoint, ...]:
        """Positions without the closing duplicate."""
        return self.points[:-1]

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox.of_points(self.points)

    def lonlat(self) -> list[tuple[float, float]]:
        """Return the closed ring as ``(lon, lat)`` tuples."""
        return [p.as_lonlat() for p in self.points]

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True, slots=True)
class Polygon:
    """An outer ring with optional holes.

    Holes are carried for completeness; offsetting and filtering operate on
    the outer ring only.
    """

    outer: Ring
    holes: tuple[Ring, ...] = field(default_factory=tuple)

    @property
    def has_holes(self) -> bool:
        return len(self.holes) > 0

    @property
    def bbox(self) -> BoundingBox:
        return self.outer.bbox


@dataclass(frozen=True, slots=True)
class BoundaryGeometry:
    """One or more polygons (a MultiPolygon when more than one)."""

    polygons: tuple[Polygon, ...]

    def __post_init__(self) -> None:
        polygons = tuple(self.polygons)
        if not polygons:
            msg = "BoundaryGeometry needs at least one polygon"
            raise GeometryValidationError(msg)
        object.__setattr__(self, "polygons", polygons)

    @property
    def first(self) -> Polygon:
        return self.polygons[0]

    @property
    def is_multi(self) -> bool:
        return len(self.polygons) > 1


@dataclass(frozen=True, slots=True)
class OffsetPolygon:
    """Result of an inward offset: one or more disjoint component rings.

    Attributes:
        components: Component rings, counter-clockwise in ``(lon, lat)``.
        radius_km: Offset distance that produced this region.
        area_km2: Total planar area of the components in the local frame.
    """

    components: tuple[Ring, ...]
    radius_km: float = 0.0
    area_km2: float = 0.0

    def __post_init__(self) -> None:
        components = tuple(self.components)
        if not components:
            msg = "OffsetPolygon needs at least one component ring"
            raise GeometryValidationError(msg)
        object.__setattr__(self, "components", components)

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox.of_points(p for ring in self.components for p in ring.points)
