"""Boundary normalisation: any supported input → one canonical Polygon.

Accepted inputs:
- a ``Ring`` (convex hull output),
- a ``Polygon`` or ``BoundaryGeometry``,
- a GeoJSON-like mapping: a Polygon/MultiPolygon geometry, a Feature, or
  a FeatureCollection.

Search order for mappings: a bare geometry is used directly; a Feature
contributes its geometry; a FeatureCollection contributes the geometry of
the first feature (in collection order) whose geometry is a Polygon or
MultiPolygon.

Downstream stages work on a single polygon, so a MultiPolygon is reduced
to its first constituent polygon (a warning is logged when parts are
dropped).  Holes are kept on the model but ignored by offsetting.

Self-intersecting outer rings (e.g. a bowtie) are rejected with
``InvalidBoundaryError``; no repair is attempted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from coverage_grid.core.exceptions import ValidationError
from coverage_grid.models.geometry import (
    BoundaryGeometry,
    CoordinateValidationError,
    GeometryValidationError,
    Polygon,
    Ring,
)

logger = logging.getLogger("coverage_grid.activities.normalize_boundary")

POLYGON_TYPES = frozenset({"Polygon", "MultiPolygon"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class NoPolygonGeometryError(ValidationError):
    """Raised when the boundary input holds no Polygon/MultiPolygon geometry."""

    default_stage = "normalize_boundary"
    default_code = "NO_POLYGON_GEOMETRY"


class InvalidBoundaryError(ValidationError):
    """Raised when a polygon geometry is found but cannot be used."""

    default_stage = "normalize_boundary"
    default_code = "BOUNDARY_INVALID"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_boundary(source: object) -> Polygon:
    """Reduce *source* to the single polygon the pipeline works on.

    Raises:
        NoPolygonGeometryError: If no Polygon/MultiPolygon geometry exists.
        InvalidBoundaryError: If the polygon is malformed or its outer ring
            is not simple.
    """
    if isinstance(source, Ring):
        polygon = Polygon(outer=source)
    elif isinstance(source, Polygon):
        polygon = source
    elif isinstance(source, BoundaryGeometry):
        polygon = _first_polygon(source)
    elif isinstance(source, Mapping):
        polygon = _first_polygon(boundary_from_mapping(source))
    else:
        msg = f"Unsupported boundary input of type {type(source).__name__}"
        raise NoPolygonGeometryError(msg)

    if polygon.has_holes:
        logger.warning(
            "Ignoring %d hole ring(s); the offset is computed from the outer ring only",
            len(polygon.holes),
        )

    validate_simple_ring(polygon.outer)
    logger.info(
        "Boundary normalised | vertices=%d | holes=%d",
        len(polygon.outer.vertices),
        len(polygon.holes),
    )
    return polygon


def find_polygon_geometry(data: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Locate the first Polygon/MultiPolygon geometry in a GeoJSON mapping."""
    kind = data.get("type")
    if kind in POLYGON_TYPES:
        return data
    if kind == "Feature":
        geometry = data.get("geometry")
        if isinstance(geometry, Mapping) and geometry.get("type") in POLYGON_TYPES:
            return geometry
        return None
    if kind == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list):
            return None
        for feature in features:
            if not isinstance(feature, Mapping):
                continue
            geometry = feature.get("geometry")
            if isinstance(geometry, Mapping) and geometry.get("type") in POLYGON_TYPES:
                return geometry
    return None


def boundary_from_mapping(data: Mapping[str, Any]) -> BoundaryGeometry:
    """Convert the first polygon geometry of a GeoJSON mapping to the model.

    All constituent polygons of a MultiPolygon are converted.

    Raises:
        NoPolygonGeometryError: If no polygon geometry is found.
        InvalidBoundaryError: If coordinates are malformed.
    """
    geometry = find_polygon_geometry(data)
    if geometry is None:
        msg = "No Polygon or MultiPolygon geometry found in the supplied boundary data"
        raise NoPolygonGeometryError(msg)

    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list):
        msg = f"{geometry.get('type')} geometry has no coordinate array"
        raise InvalidBoundaryError(msg)

    parts = [coordinates] if geometry["type"] == "Polygon" else coordinates
    polygons = tuple(_polygon_from_coords(part, index) for index, part in enumerate(parts))
    if not polygons:
        msg = f"{geometry['type']} geometry contains no polygons"
        raise NoPolygonGeometryError(msg)
    return BoundaryGeometry(polygons)


def validate_simple_ring(ring: Ring) -> None:
    """Reject rings that are not simple, non-degenerate polygons.

    Raises:
        InvalidBoundaryError: With shapely's validity explanation.
    """
    from shapely.geometry import Polygon as ShapelyPolygon
    from shapely.validation import explain_validity

    poly = ShapelyPolygon(ring.lonlat())
    if not poly.is_valid:
        msg = f"Boundary ring is not a simple polygon: {explain_validity(poly)}"
        raise InvalidBoundaryError(msg)
    if poly.area == 0:
        msg = "Boundary ring encloses zero area"
        raise InvalidBoundaryError(msg)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_polygon(boundary: BoundaryGeometry) -> Polygon:
    if boundary.is_multi:
        logger.warning(
            "MultiPolygon boundary with %d parts; using the first polygon only",
            len(boundary.polygons),
        )
    return boundary.first


def _polygon_from_coords(rings: object, index: int) -> Polygon:
    if not isinstance(rings, list) or not rings:
        msg = f"Polygon {index} has no rings"
        raise InvalidBoundaryError(msg)
    try:
        built = [Ring.from_lonlat(coords_to_tuples(ring)) for ring in rings]
    except (GeometryValidationError, CoordinateValidationError) as exc:
        msg = f"Polygon {index} is malformed: {exc.message}"
        raise InvalidBoundaryError(msg) from exc
    return Polygon(outer=built[0], holes=tuple(built[1:]))


def coords_to_tuples(raw_coords: object) -> list[tuple[float, float]]:
    """Convert GeoJSON positions to ``(lon, lat)`` tuples, dropping altitude.

    Raises:
        InvalidBoundaryError: If any position is malformed.
    """
    if not isinstance(raw_coords, (list, tuple)):
        msg = f"Ring must be a coordinate array, got {type(raw_coords).__name__}"
        raise InvalidBoundaryError(msg)
    coords: list[tuple[float, float]] = []
    for idx, c in enumerate(raw_coords):
        if not isinstance(c, (list, tuple)) or len(c) < 2:
            msg = f"Malformed position at index {idx}: expected [lon, lat], got {c!r}"
            raise InvalidBoundaryError(msg)
        try:
            lon = float(c[0])
            lat = float(c[1])
        except (TypeError, ValueError) as exc:
            msg = f"Malformed position at index {idx}: cannot convert to float (lon={c[0]!r}, lat={c[1]!r})"
            raise InvalidBoundaryError(msg) from exc
        coords.append((lon, lat))
    return coords
