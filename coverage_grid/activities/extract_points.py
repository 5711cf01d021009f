"""Coordinate extraction from tabular rows.

Turns rows read from a spreadsheet-like source into an ordered tuple of
``GeoPoint``.  Two layouts are recognised, per row:

(a) one cell holding both numbers, e.g. ``"55.75, 37.62"`` or
    ``"55,75; 37,62"``.  A ``;`` separator allows decimal commas inside
    each token; with a ``,`` separator exactly two tokens are required and
    decimal commas are unsupported.
(b) two adjacent cells each holding a number, e.g. ``55.75 | 37.62`` or
    ``"55,75" | "37,62"``.  A header row naming latitude/longitude columns
    overrides the positional choice.

When the first non-empty cell and its right neighbour both read as
numbers, layout (b) wins.  This keeps ``"55,75" | "37,62"`` from being
read as the single-cell pair ``(55, 75)``.

Rows that match neither layout, or hold out-of-range values, are skipped.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence

from coverage_grid.core.constants import MIN_POINTS_FOR_HULL
from coverage_grid.core.exceptions import ValidationError
from coverage_grid.models.geometry import CoordinateValidationError, GeoPoint

logger = logging.getLogger("coverage_grid.activities.extract_points")

# ---------------------------------------------------------------------------
# Header keywords
# ---------------------------------------------------------------------------

LAT_KEYWORDS = ("lat", "latitude", "y", "широта", "шир")
LON_KEYWORDS = ("lon", "lng", "long", "longitude", "x", "долгота", "долг")

# Keywords this short only match exactly (``"x"`` must not match ``"index"``).
_MIN_PREFIX_KEYWORD = 3

_NORMALIZE_RE = re.compile(r"[\s_]+")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(ValidationError):
    """Raised when the input cannot be read as rows of cells."""

    default_stage = "extract_points"
    default_code = "ROWS_UNREADABLE"


class InsufficientPointsError(ValidationError):
    """Raised when fewer than three valid coordinates were extracted.

    Attributes:
        point_count: Number of valid points found.
    """

    default_stage = "extract_points"
    default_code = "INSUFFICIENT_POINTS"
    context_fields = ("point_count",)

    def __init__(self, point_count: int) -> None:
        self.point_count = point_count
        super().__init__(
            f"Found {point_count} valid coordinate(s); at least "
            f"{MIN_POINTS_FOR_HULL} are required to build a polygon"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_points(rows: Iterable[Sequence[object]]) -> tuple[GeoPoint, ...]:
    """Extract ``(lat, lon)`` points from tabular rows.

    Args:
        rows: Rows of cells (``str``, ``int``, ``float`` or ``None``).
            The first non-empty row may be a header.

    Returns:
        Points in row order, duplicates retained.

    Raises:
        ParseError: If *rows* is not an iterable of cell sequences.
        InsufficientPointsError: If fewer than 3 valid points were found.
    """
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Iterable):
        msg = f"Expected an iterable of rows, got {type(rows).__name__}"
        raise ParseError(msg)

    columns: tuple[int, int] | None = None
    header_checked = False
    points: list[GeoPoint] = []
    skipped = 0

    for index, row in enumerate(rows):
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            msg = f"Row {index} is not a sequence of cells (got {type(row).__name__})"
            raise ParseError(msg)
        if _is_blank_row(row):
            continue

        if not header_checked:
            header_checked = True
            columns = detect_header(row)
            if columns is not None:
                logger.info(
                    "Header row detected | lat_column=%d | lon_column=%d",
                    columns[0],
                    columns[1],
                )
                continue

        point = parse_row(row, columns)
        if point is None:
            skipped += 1
            logger.debug("Skipping row %d: no coordinate pair found", index)
            continue
        points.append(point)

    logger.info("Coordinates extracted | points=%d | skipped_rows=%d", len(points), skipped)

    if len(points) < MIN_POINTS_FOR_HULL:
        raise InsufficientPointsError(len(points))
    return tuple(points)


def detect_header(row: Sequence[object]) -> tuple[int, int] | None:
    """Return ``(lat_index, lon_index)`` if *row* names both columns."""
    lat_scores: list[tuple[int, int]] = []
    lon_scores: list[tuple[int, int]] = []
    for index, cell in enumerate(row):
        if not isinstance(cell, str):
            continue
        name = _normalize_name(cell)
        if not name:
            continue
        lat_score = _keyword_score(name, LAT_KEYWORDS)
        lon_score = _keyword_score(name, LON_KEYWORDS)
        if lat_score > lon_score:
            lat_scores.append((lat_score, index))
        elif lon_score > lat_score:
            lon_scores.append((lon_score, index))

    if not lat_scores or not lon_scores:
        return None
    # Highest score wins; leftmost column breaks ties.
    lat_index = min(lat_scores, key=lambda s: (-s[0], s[1]))[1]
    lon_index = min(lon_scores, key=lambda s: (-s[0], s[1]))[1]
    return (lat_index, lon_index)


def parse_row(row: Sequence[object], columns: tuple[int, int] | None = None) -> GeoPoint | None:
    """Parse one row into a point, or ``None`` when it holds no valid pair."""
    pair = _pair_from_columns(row, columns) if columns else _pair_from_layouts(row)
    if pair is None:
        return None
    lat, lon = pair
    try:
        return GeoPoint(lat=lat, lon=lon)
    except CoordinateValidationError as exc:
        logger.debug("Discarding out-of-range coordinate: %s", exc)
        return None


def parse_number(cell: object) -> float | None:
    """Read a cell as a finite decimal number.

    Strings may use a decimal comma (``"55,75"``) when they contain no
    decimal point.  Booleans are not numbers.
    """
    if isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        value = float(cell)
    elif isinstance(cell, str):
        text = cell.strip()
        if not text:
            return None
        if "," in text and "." not in text and text.count(",") == 1:
            text = text.replace(",", ".")
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def parse_pair_cell(cell: object) -> tuple[float, float] | None:
    """Read a single cell holding ``lat,lon`` or ``lat;lon``."""
    if not isinstance(cell, str):
        return None
    text = cell.strip()
    if ";" in text:
        tokens = text.split(";")
        values = [parse_number(token) for token in tokens]
    elif "," in text:
        tokens = text.split(",")
        values = [_parse_plain_number(token) for token in tokens]
    else:
        return None
    if len(values) != 2 or values[0] is None or values[1] is None:
        return None
    return (values[0], values[1])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pair_from_columns(row: Sequence[object], columns: tuple[int, int]) -> tuple[float, float] | None:
    lat_index, lon_index = columns
    if max(lat_index, lon_index) < len(row):
        lat = parse_number(row[lat_index])
        lon = parse_number(row[lon_index])
        if lat is not None and lon is not None:
            return (lat, lon)
    # A header does not rule out a single-cell pair in some rows.
    first = _first_filled(row)
    return parse_pair_cell(row[first]) if first is not None else None


def _pair_from_layouts(row: Sequence[object]) -> tuple[float, float] | None:
    first = _first_filled(row)
    if first is None:
        return None

    if first + 1 < len(row):
        lat = parse_number(row[first])
        lon = parse_number(row[first + 1])
        if lat is not None and lon is not None:
            return (lat, lon)

    pair = parse_pair_cell(row[first])
    if pair is not None:
        return pair

    for k in range(first + 1, len(row) - 1):
        lat = parse_number(row[k])
        lon = parse_number(row[k + 1])
        if lat is not None and lon is not None:
            return (lat, lon)
    return None


def _parse_plain_number(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _first_filled(row: Sequence[object]) -> int | None:
    for index, cell in enumerate(row):
        if not _is_blank(cell):
            return index
    return None


def _is_blank(cell: object) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def _is_blank_row(row: Sequence[object]) -> bool:
    return all(_is_blank(cell) for cell in row)


def _normalize_name(name: str) -> str:
    return _NORMALIZE_RE.sub("", name.strip().lower())


def _keyword_score(name: str, keywords: Sequence[str]) -> int:
    if name in keywords:
        return 100
    for keyword in keywords:
        if len(keyword) >= _MIN_PREFIX_KEYWORD and name.startswith(keyword):
            return 60
    return 0
