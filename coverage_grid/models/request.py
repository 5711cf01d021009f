"""Data model for a coverage generation request.

The request is owned by the caller; the pipeline only reads it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from coverage_grid.core.exceptions import ValidationError
from coverage_grid.models.geometry import BoundaryGeometry, Polygon, Ring

BoundarySource = Union[BoundaryGeometry, Polygon, Ring, Mapping[str, Any]]
"""Anything ``normalize_boundary`` accepts."""


class InvalidRadiusError(ValidationError):
    """Raised when the coverage radius is not a positive finite number."""

    default_stage = "request"
    default_code = "RADIUS_INVALID"
    context_fields = ("radius_km",)

    def __init__(self, radius_km: object, message: str = "") -> None:
        self.radius_km = radius_km
        super().__init__(message or f"Radius must be a positive number of kilometres, got {radius_km!r}")


class InvalidLabelError(ValidationError):
    """Raised when the region label is blank."""

    default_stage = "request"
    default_code = "LABEL_INVALID"


def validate_radius_km(radius_km: float) -> float:
    """Return *radius_km* as a float, or raise ``InvalidRadiusError``."""
    if isinstance(radius_km, bool):
        raise InvalidRadiusError(radius_km)
    try:
        value = float(radius_km)
    except (TypeError, ValueError) as exc:
        raise InvalidRadiusError(radius_km) from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidRadiusError(radius_km)
    return value


@dataclass(frozen=True, slots=True)
class CoverageRequest:
    """Everything needed for one pipeline invocation.

    Attributes:
        boundary: Region boundary (hull ring, polygon, multipolygon, or a
            GeoJSON-like mapping).
        label: Region label used inside output lines and batch names.
            Treated as an opaque string.
        radius_km: Coverage radius and edge inset in kilometres.
    """

    boundary: BoundarySource
    label: str
    radius_km: float

    def __post_init__(self) -> None:
        if not isinstance(self.label, str) or not self.label.strip():
            msg = "Region label must be a non-empty string"
            raise InvalidLabelError(msg)
        object.__setattr__(self, "label", self.label.strip())
        object.__setattr__(self, "radius_km", validate_radius_km(self.radius_km))
