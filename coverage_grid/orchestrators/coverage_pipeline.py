"""Coverage pipeline orchestrator.

Stages
------
1. **Normalise** the request boundary to one polygon.
2. **Offset** it inward by the coverage radius.
3. **Lattice**: generate candidates over the offset region's bounding box.
4. **Filter and batch** lazily: candidates are evaluated one at a time;
   accepted points are formatted and emitted in size-bounded batches.

Stages 1-3 run eagerly when the generator is first advanced.  Stage 4 is
pull-based, so a consumer sees batches while later candidates are still
unevaluated.  The producer is finite and single-use.

Emission contract (per run):
    - ``ProgressEvent(evaluated, total_candidates)`` every
      ``progress_interval`` candidates and after each batch, never
      decreasing;
    - ``OutputBatch`` when full, parts numbered 1, 2, ...;
    - a final ``ProgressEvent(total, total)``.

Cancellation is checked before every candidate evaluation.  A cancelled
run raises ``GenerationCancelledError``; the pending partial batch is
discarded.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from coverage_grid.activities.chunk_results import (
    batch_name,
    format_point_line,
    validate_batch_size,
)
from coverage_grid.activities.convex_hull import build_convex_hull
from coverage_grid.activities.extract_points import extract_points
from coverage_grid.activities.filter_points import NoPointsInRegionError, PreparedRegion
from coverage_grid.activities.generate_grid import generate_coverage_grid
from coverage_grid.activities.normalize_boundary import normalize_boundary
from coverage_grid.activities.offset_polygon import offset_inward
from coverage_grid.core.config import CoverageConfig, validate_config
from coverage_grid.core.exceptions import PermanentError
from coverage_grid.models.output import OutputBatch, ProgressEvent

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from coverage_grid.activities.chunk_results import ChunkItem
    from coverage_grid.models.geometry import Polygon
    from coverage_grid.models.request import CoverageRequest

logger = logging.getLogger("coverage_grid.orchestrators.coverage_pipeline")


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class GenerationCancelledError(PermanentError):
    """Raised when a run is cancelled through its ``CancellationToken``."""

    default_stage = "coverage_pipeline"
    default_code = "CANCELLED"


class CancellationToken:
    """Thread-safe cancellation flag shared between a host and a producer.

    The host calls ``cancel()`` from any thread; the producer observes it
    before its next candidate evaluation.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, evaluated: int = 0) -> None:
        if self._event.is_set():
            msg = f"Generation cancelled after {evaluated} candidate(s)"
            raise GenerationCancelledError(msg)


# ---------------------------------------------------------------------------
# Producer
# ---------------------------------------------------------------------------


def generate_coverage(
    request: CoverageRequest,
    *,
    config: CoverageConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> Iterator[ChunkItem]:
    """Run the pipeline for *request*, yielding batches and progress.

    Args:
        request: Boundary, label and radius.
        config: Batch size, packing and progress interval; defaults apply
            when omitted.
        cancel_token: Optional token checked before each candidate.

    Raises:
        ConfigValidationError: If *config* is out of range.
        NoPolygonGeometryError, InvalidBoundaryError: From normalisation.
        RegionTooSmallError: If the offset leaves nothing.
        NoPointsInRegionError: If no candidate is accepted.
        GenerationCancelledError: If *cancel_token* is set mid-run.
    """
    config = config or CoverageConfig()
    validate_config(config)
    batch_size = validate_batch_size(config.batch_size)
    token = cancel_token or CancellationToken()
    token.raise_if_cancelled()

    polygon = normalize_boundary(request.boundary)
    region = offset_inward(polygon, request.radius_km)
    candidates = generate_coverage_grid(region.bbox, request.radius_km, config.packing)
    prepared = PreparedRegion(region)
    total = len(candidates)

    logger.info(
        "Coverage run started | label=%s | radius=%.3f km | packing=%s | candidates=%d",
        request.label,
        request.radius_km,
        config.packing,
        total,
    )

    pending: list[str] = []
    accepted = 0
    part = 0
    reported = 0

    for evaluated, point in enumerate(candidates, start=1):
        token.raise_if_cancelled(evaluated - 1)

        if prepared.contains(point):
            accepted += 1
            pending.append(format_point_line(request.label, request.radius_km, point))
            if len(pending) == batch_size:
                part += 1
                yield OutputBatch(name=batch_name(request.label, part), lines=tuple(pending), part=part)
                pending = []
                yield ProgressEvent(processed=evaluated, total=total)
                reported = evaluated

        if evaluated % config.progress_interval == 0 and evaluated > reported:
            yield ProgressEvent(processed=evaluated, total=total)
            reported = evaluated

    if accepted == 0:
        raise NoPointsInRegionError(total)

    if pending:
        part += 1
        yield OutputBatch(name=batch_name(request.label, part), lines=tuple(pending), part=part)

    yield ProgressEvent(processed=total, total=total)
    logger.info(
        "Coverage run completed | label=%s | candidates=%d | accepted=%d | batches=%d",
        request.label,
        total,
        accepted,
        part,
    )


def run_pipeline(
    request: CoverageRequest,
    *,
    config: CoverageConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> list[OutputBatch]:
    """Drain ``generate_coverage`` and return only the batches."""
    return [
        item
        for item in generate_coverage(request, config=config, cancel_token=cancel_token)
        if isinstance(item, OutputBatch)
    ]


def boundary_from_rows(rows: Iterable[Sequence[object]]) -> Polygon:
    """Raw table rows → convex hull → normalised polygon."""
    points = extract_points(rows)
    hull = build_convex_hull(points)
    return normalize_boundary(hull)


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------


def build_run_summary(
    batches: Sequence[OutputBatch],
    *,
    label: str,
    radius_km: float,
) -> dict[str, object]:
    """Summarise a finished run for logging and host display."""
    point_count = sum(len(b.lines) for b in batches)
    return {
        "label": label,
        "radius_km": radius_km,
        "batch_count": len(batches),
        "point_count": point_count,
        "files": [b.name for b in batches],
        "message": f"Generated {point_count} point(s) in {len(batches)} batch(es) for {label!r}.",
    }
