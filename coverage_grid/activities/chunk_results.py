"""Result formatting and batching.

Each accepted point becomes one line::

    <label>:<radius>km:<lat>,<lon>

with latitude and longitude printed to six fractional digits and the
radius in its shortest round-trip decimal form (``10``, ``2.5``).  Lines
are grouped into batches of at most ``batch_size`` in point order; batch
*k* (one-based) is named ``<slug(label)>_part<k>.txt``.

Concatenating the lines of all batches in part order reproduces the full
line list exactly.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Union

from coverage_grid.core.constants import (
    BATCH_NAME_TEMPLATE,
    COORDINATE_DECIMALS,
    DEFAULT_BATCH_SIZE,
    FALLBACK_SLUG,
)
from coverage_grid.core.exceptions import ValidationError
from coverage_grid.models.output import OutputBatch, ProgressEvent
from coverage_grid.models.request import validate_radius_km

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from coverage_grid.models.geometry import GeoPoint

logger = logging.getLogger("coverage_grid.activities.chunk_results")

ChunkItem = Union[ProgressEvent, OutputBatch]

_WHITESPACE_RE = re.compile(r"\s+")
_DASHES_RE = re.compile(r"-{2,}")


class InvalidBatchSizeError(ValidationError):
    """Raised when the batch size is not a positive integer."""

    default_stage = "chunk_results"
    default_code = "BATCH_SIZE_INVALID"


def format_radius(radius_km: float) -> str:
    """Shortest round-trip decimal form of a radius: ``10``, ``2.5``, ``0.00001``.

    Never uses exponent notation.
    """
    text = format(Decimal(repr(float(radius_km))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_point_line(label: str, radius_km: float, point: GeoPoint) -> str:
    """Format one output line for *point*."""
    return (
        f"{label}:{format_radius(radius_km)}km:"
        f"{point.lat:.{COORDINATE_DECIMALS}f},{point.lon:.{COORDINATE_DECIMALS}f}"
    )


def slugify_label(label: str) -> str:
    """File-name-safe form of a region label.

    Lower-cases, turns whitespace runs into ``-``, drops everything except
    letters, digits and ``-``, collapses repeated ``-`` and trims them from
    both ends.  Falls back to ``"region"`` when nothing survives.
    """
    slug = _WHITESPACE_RE.sub("-", label.lower())
    slug = "".join(ch for ch in slug if ch.isalnum() or ch == "-")
    slug = _DASHES_RE.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


def batch_name(label: str, part: int) -> str:
    """Name of batch *part* (one-based) for *label*."""
    return BATCH_NAME_TEMPLATE.format(slug=slugify_label(label), part=part)


def validate_batch_size(batch_size: int) -> int:
    """Return *batch_size* if it is a positive integer, else raise."""
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        msg = f"Batch size must be a positive integer, got {batch_size!r}"
        raise InvalidBatchSizeError(msg)
    return batch_size


def chunk_results(
    points: Iterable[GeoPoint],
    label: str,
    radius_km: float,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Iterator[ChunkItem]:
    """Format *points* and yield them as batches with progress.

    After each ``OutputBatch`` a ``ProgressEvent(lines_emitted, total_lines)``
    is yielded.  No batch is yielded for an empty point sequence.

    Raises:
        InvalidBatchSizeError: If *batch_size* < 1.
        InvalidRadiusError: If *radius_km* is not a positive number.
    """
    size = validate_batch_size(batch_size)
    radius = validate_radius_km(radius_km)
    lines = [format_point_line(label, radius, p) for p in points]
    total = len(lines)

    part = 0
    for start in range(0, total, size):
        part += 1
        batch = OutputBatch(
            name=batch_name(label, part),
            lines=tuple(lines[start : start + size]),
            part=part,
        )
        logger.debug("Batch assembled | name=%s | lines=%d", batch.name, len(batch.lines))
        yield batch
        yield ProgressEvent(processed=min(start + size, total), total=total)

    logger.info("Results chunked | lines=%d | batches=%d | batch_size=%d", total, part, size)
