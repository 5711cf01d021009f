"""Coverage lattice generation over a bounding box.

Produces candidate points such that every location in the box lies within
the coverage radius of some candidate.

Packings:
- ``square``: step ``r·√2`` along both axes (half the cell diagonal equals
  ``r``).  Row and column counts are ``floor(extent / step) + 1`` with the
  leftover slack split evenly on both sides.
- ``hex``: pointy-top hexagons of circum-radius ``r``.  Rows are ``1.5·r``
  apart, columns ``√3·r`` apart, odd rows shifted by half a column.  The
  lattice is padded by one row and one column beyond each side of the box.

Spacing is measured on the WGS 84 ellipsoid (``pyproj.Geod``), not in
degrees: rows are placed by stepping due north along a meridian, and each
row's longitude step is the geodesic eastward step at that row's latitude.

Columns are centred per row, so columns of adjacent rows drift apart
slightly with latitude; the resulting coverage gap exceeds the radius by
well under 1% at regional extents.

Output order is row-major: increasing latitude, then increasing longitude.
Boxes crossing the antimeridian are not supported.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from coverage_grid.core.constants import (
    HEX_COLUMN_FACTOR,
    HEX_ROW_FACTOR,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    METRES_PER_KM,
    MIN_LATITUDE,
    MIN_LONGITUDE,
    PACKING_HEX,
    PACKING_SQUARE,
    PACKINGS,
    SQUARE_STEP_FACTOR,
    WGS84_ELLIPSOID,
)
from coverage_grid.core.exceptions import ValidationError
from coverage_grid.models.geometry import BoundingBox, GeoPoint
from coverage_grid.models.request import validate_radius_km

if TYPE_CHECKING:
    from pyproj import Geod

logger = logging.getLogger("coverage_grid.activities.generate_grid")

_EAST = 90.0
_NORTH = 0.0
_SOUTH = 180.0


class InvalidPackingError(ValidationError):
    """Raised for an unknown lattice packing name."""

    default_stage = "generate_grid"
    default_code = "PACKING_INVALID"


def generate_coverage_grid(
    bbox: BoundingBox,
    radius_km: float,
    packing: str = PACKING_SQUARE,
) -> tuple[GeoPoint, ...]:
    """Generate the candidate lattice covering *bbox*.

    Args:
        bbox: Extent to cover (usually the offset polygon's bounding box).
        radius_km: Coverage radius in kilometres.
        packing: ``"square"`` or ``"hex"``.

    Returns:
        Candidate points in row-major order.

    Raises:
        InvalidRadiusError: If *radius_km* is not a positive number.
        InvalidPackingError: If *packing* is unknown.
    """
    row_step, col_step = lattice_steps_km(radius_km, packing)
    # Staggered rows leave half-column gaps at the bbox edges.
    pad = 1 if packing == PACKING_HEX else 0

    from pyproj import Geod

    geod = Geod(ellps=WGS84_ELLIPSOID)

    points: list[GeoPoint] = []
    for row_index, lat in enumerate(_row_latitudes(geod, bbox, row_step, pad)):
        shift = 0.5 if packing == PACKING_HEX and row_index % 2 == 1 else 0.0
        for lon in _row_longitudes(geod, bbox, lat, col_step, pad, shift):
            points.append(GeoPoint(lat=lat, lon=lon))

    logger.info(
        "Coverage grid generated | packing=%s | radius=%.3f km | candidates=%d | "
        "bbox=[%.4f, %.4f, %.4f, %.4f]",
        packing,
        radius_km,
        len(points),
        *bbox.as_tuple(),
    )
    return tuple(points)


def lattice_steps_km(radius_km: float, packing: str = PACKING_SQUARE) -> tuple[float, float]:
    """Return ``(row_step_km, column_step_km)`` for a packing."""
    radius = validate_radius_km(radius_km)
    if packing == PACKING_SQUARE:
        return (radius * SQUARE_STEP_FACTOR, radius * SQUARE_STEP_FACTOR)
    if packing == PACKING_HEX:
        return (radius * HEX_ROW_FACTOR, radius * HEX_COLUMN_FACTOR)
    msg = f"Unknown packing {packing!r}; expected one of {sorted(PACKINGS)}"
    raise InvalidPackingError(msg)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _centred_offsets(extent: float, step: float, pad: int) -> list[float]:
    """Offsets from the low edge: ``floor(extent/step)+1`` evenly centred, plus padding."""
    count = math.floor(extent / step) + 1
    slack = extent - (count - 1) * step
    start = slack / 2.0 - pad * step
    return [start + k * step for k in range(count + 2 * pad)]


def _row_latitudes(geod: Geod, bbox: BoundingBox, step_km: float, pad: int) -> list[float]:
    _, _, height_m = geod.inv(0.0, bbox.min_lat, 0.0, bbox.max_lat)
    height_km = height_m / METRES_PER_KM
    _, _, to_north_pole_m = geod.inv(0.0, bbox.min_lat, 0.0, MAX_LATITUDE)
    _, _, to_south_pole_m = geod.inv(0.0, bbox.min_lat, 0.0, MIN_LATITUDE)

    latitudes: list[float] = []
    for offset_km in _centred_offsets(height_km, step_km, pad):
        offset_m = offset_km * METRES_PER_KM
        if offset_m == 0.0:
            latitudes.append(bbox.min_lat)
            continue
        # Rows past a pole would wrap onto the opposite meridian.
        if offset_m > to_north_pole_m or -offset_m > to_south_pole_m:
            continue
        azimuth = _NORTH if offset_m > 0 else _SOUTH
        _, lat, _ = geod.fwd(0.0, bbox.min_lat, azimuth, abs(offset_m))
        latitudes.append(max(MIN_LATITUDE, min(MAX_LATITUDE, lat)))
    return latitudes


def _row_longitudes(
    geod: Geod,
    bbox: BoundingBox,
    lat: float,
    step_km: float,
    pad: int,
    shift: float,
) -> list[float]:
    lon_end, _, _ = geod.fwd(bbox.min_lon, lat, _EAST, step_km * METRES_PER_KM)
    step_deg = (lon_end - bbox.min_lon) % 360.0
    width_deg = bbox.max_lon - bbox.min_lon
    if not math.isfinite(step_deg) or step_deg <= 0.0 or step_deg >= 360.0:
        # At a pole every longitude is the same place.
        return [(bbox.min_lon + bbox.max_lon) / 2.0]

    longitudes: list[float] = []
    for offset in _centred_offsets(width_deg, step_deg, pad):
        lon = bbox.min_lon + offset + shift * step_deg
        if MIN_LONGITUDE <= lon <= MAX_LONGITUDE:
            longitudes.append(lon)
    return longitudes
