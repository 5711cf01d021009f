"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- GeoPoint, Ring, Polygon, BoundaryGeometry: input geometry
- BoundingBox, OffsetPolygon: derived geometry
- CoverageRequest: one pipeline invocation
- OutputBatch, ProgressEvent: emitted results
"""

from coverage_grid.models.geometry import (
    BoundaryGeometry,
    BoundingBox,
    CoordinateValidationError,
    GeometryValidationError,
    GeoPoint,
    OffsetPolygon,
    Polygon,
    Ring,
    validate_wgs84_coordinate,
)
from coverage_grid.models.output import OutputBatch, ProgressEvent
from coverage_grid.models.request import (
    CoverageRequest,
    InvalidLabelError,
    InvalidRadiusError,
    validate_radius_km,
)

__all__ = [
    "BoundaryGeometry",
    "BoundingBox",
    "CoordinateValidationError",
    "CoverageRequest",
    "GeoPoint",
    "GeometryValidationError",
    "InvalidLabelError",
    "InvalidRadiusError",
    "OffsetPolygon",
    "OutputBatch",
    "Polygon",
    "ProgressEvent",
    "Ring",
    "validate_radius_km",
    "validate_wgs84_coordinate",
]
