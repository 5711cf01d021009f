"""Shared pipeline constants.

Centralises coordinate bounds, unit conversions and output conventions
that are used by more than one stage.
"""

from __future__ import annotations

import math

# ---------------------------------------------------------------------------
# WGS 84 coordinate bounds
# ---------------------------------------------------------------------------

MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0

WGS84_ELLIPSOID: str = "WGS84"
"""Ellipsoid name passed to ``pyproj.Geod`` for geodesic calculations."""

METRES_PER_KM = 1_000.0

# ---------------------------------------------------------------------------
# Polygon structure
# ---------------------------------------------------------------------------

MIN_DISTINCT_VERTICES = 3
"""A ring needs at least 3 distinct vertices (4 entries including closure)."""

MIN_POINTS_FOR_HULL = 3

# ---------------------------------------------------------------------------
# Lattice packing
# ---------------------------------------------------------------------------

PACKING_SQUARE = "square"
PACKING_HEX = "hex"
PACKINGS: frozenset[str] = frozenset({PACKING_SQUARE, PACKING_HEX})

SQUARE_STEP_FACTOR = math.sqrt(2.0)
"""Square lattice step as a multiple of the coverage radius."""

HEX_ROW_FACTOR = 1.5
HEX_COLUMN_FACTOR = math.sqrt(3.0)

# ---------------------------------------------------------------------------
# Output conventions
# ---------------------------------------------------------------------------

DEFAULT_BATCH_SIZE = 200
COORDINATE_DECIMALS = 6
BATCH_NAME_TEMPLATE = "{slug}_part{part}.txt"
FALLBACK_SLUG = "region"
