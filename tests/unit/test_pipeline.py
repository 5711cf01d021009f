"""Tests for the coverage pipeline orchestrator."""

from __future__ import annotations

import pytest

from coverage_grid.activities.chunk_results import chunk_results
from coverage_grid.activities.filter_points import filter_inside
from coverage_grid.activities.generate_grid import generate_coverage_grid
from coverage_grid.activities.normalize_boundary import normalize_boundary
from coverage_grid.activities.offset_polygon import RegionTooSmallError, offset_inward
from coverage_grid.core.config import ConfigValidationError, CoverageConfig
from coverage_grid.models.geometry import Ring
from coverage_grid.models.output import OutputBatch, ProgressEvent
from coverage_grid.models.request import CoverageRequest
from coverage_grid.orchestrators.coverage_pipeline import (
    CancellationToken,
    GenerationCancelledError,
    boundary_from_rows,
    build_run_summary,
    generate_coverage,
    run_pipeline,
)


def _request(boundary: object, radius_km: float = 1.0, label: str = "Test Region") -> CoverageRequest:
    return CoverageRequest(boundary=boundary, label=label, radius_km=radius_km)  # type: ignore[arg-type]


def _expected_batches(ring: Ring, radius_km: float, batch_size: int, label: str = "Test Region") -> list[OutputBatch]:
    region = offset_inward(normalize_boundary(ring), radius_km)
    accepted = filter_inside(generate_coverage_grid(region.bbox, radius_km), region)
    return [i for i in chunk_results(accepted, label, radius_km, batch_size) if isinstance(i, OutputBatch)]


class TestGenerateCoverage:
    """End-to-end generation over a 20 km square."""

    def test_matches_stage_composition(self, square_20km: Ring) -> None:
        config = CoverageConfig(batch_size=25)
        batches = run_pipeline(_request(square_20km), config=config)
        assert batches == _expected_batches(square_20km, 1.0, 25)

    def test_batch_size_two(self, square_20km: Ring) -> None:
        """Batch count is the point count over two, rounded up."""
        batches = run_pipeline(_request(square_20km), config=CoverageConfig(batch_size=2))
        point_count = sum(len(b.lines) for b in batches)
        assert len(batches) == (point_count + 1) // 2
        assert all(len(b.lines) == 2 for b in batches[:-1])

    def test_batches_are_bounded_and_numbered(self, square_20km: Ring) -> None:
        batches = run_pipeline(_request(square_20km), config=CoverageConfig(batch_size=25))
        assert len(batches) > 1
        assert all(1 <= len(b.lines) <= 25 for b in batches)
        assert all(len(b.lines) == 25 for b in batches[:-1])
        assert [b.part for b in batches] == list(range(1, len(batches) + 1))
        assert batches[0].name == "test-region_part1.txt"

    def test_line_format(self, square_20km: Ring) -> None:
        batches = run_pipeline(_request(square_20km, radius_km=2.5))
        for line in batches[0].lines:
            label, radius, coords = line.split(":")
            lat, lon = coords.split(",")
            assert label == "Test Region"
            assert radius == "2.5km"
            assert len(lat.split(".")[1]) == 6
            assert len(lon.split(".")[1]) == 6

    def test_idempotent(self, square_geojson: dict[str, object]) -> None:
        first = run_pipeline(_request(square_geojson))
        second = run_pipeline(_request(square_geojson))
        assert first == second

    def test_accepts_geojson_mapping(self, square_20km: Ring, square_geojson: dict[str, object]) -> None:
        assert run_pipeline(_request(square_geojson)) == run_pipeline(_request(square_20km))

    def test_hex_packing_uses_fewer_points(self, square_20km: Ring) -> None:
        square = run_pipeline(_request(square_20km), config=CoverageConfig(batch_size=10_000))
        hexagonal = run_pipeline(
            _request(square_20km),
            config=CoverageConfig(batch_size=10_000, packing="hex"),
        )
        assert len(hexagonal[0].lines) < len(square[0].lines)

    def test_progress_is_monotonic_and_final(self, square_20km: Ring) -> None:
        config = CoverageConfig(batch_size=25, progress_interval=10)
        items = list(generate_coverage(_request(square_20km), config=config))
        events = [i for i in items if isinstance(i, ProgressEvent)]
        processed = [e.processed for e in events]
        assert processed == sorted(processed)
        assert events[-1].processed == events[-1].total
        assert isinstance(items[-1], ProgressEvent)
        assert len({e.total for e in events}) == 1

    def test_progress_follows_each_full_batch(self, square_20km: Ring) -> None:
        config = CoverageConfig(batch_size=25, progress_interval=10_000)
        items = list(generate_coverage(_request(square_20km), config=config))
        for index, item in enumerate(items[:-1]):
            if isinstance(item, OutputBatch) and len(item.lines) == 25:
                assert isinstance(items[index + 1], ProgressEvent)

    def test_lazy_first_batch(self, square_20km: Ring) -> None:
        gen = generate_coverage(_request(square_20km), config=CoverageConfig(batch_size=1))
        first = next(gen)
        assert isinstance(first, OutputBatch)
        assert len(first.lines) == 1
        gen.close()

    def test_region_too_small(self, square_20km: Ring) -> None:
        with pytest.raises(RegionTooSmallError):
            list(generate_coverage(_request(square_20km, radius_km=15.0)))

    def test_invalid_config(self, square_20km: Ring) -> None:
        with pytest.raises(ConfigValidationError):
            list(generate_coverage(_request(square_20km), config=CoverageConfig(packing="triangle")))


class TestCancellation:
    """Cooperative cancellation."""

    def test_cancelled_before_start(self, square_20km: Ring) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(GenerationCancelledError):
            list(generate_coverage(_request(square_20km), cancel_token=token))

    def test_cancelled_mid_run(self, square_20km: Ring) -> None:
        token = CancellationToken()
        received: list[OutputBatch] = []
        gen = generate_coverage(_request(square_20km), config=CoverageConfig(batch_size=5), cancel_token=token)
        with pytest.raises(GenerationCancelledError) as exc_info:
            for item in gen:
                if isinstance(item, OutputBatch):
                    received.append(item)
                    token.cancel()
        assert len(received) == 1
        assert exc_info.value.code == "CANCELLED"
        assert exc_info.value.retryable is False

    def test_token_state(self) -> None:
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()
        token.cancel()
        assert token.cancelled is True


class TestHelpers:
    """Row boundary and run summary helpers."""

    def test_boundary_from_rows(self) -> None:
        rows = [["lat", "lon"], ["50.0", "30.0"], ["50.0", "30.2"], ["50.2", "30.2"], ["50.1", "30.1"], ["50.2", "30.0"]]
        polygon = boundary_from_rows(rows)
        assert len(polygon.outer.vertices) == 4
        assert polygon.bbox.as_tuple() == pytest.approx((50.0, 30.0, 50.2, 30.2))

    def test_run_summary(self) -> None:
        batches = [
            OutputBatch(name="a_part1.txt", lines=("x", "y"), part=1),
            OutputBatch(name="a_part2.txt", lines=("z",), part=2),
        ]
        summary = build_run_summary(batches, label="A", radius_km=2.0)
        assert summary["batch_count"] == 2
        assert summary["point_count"] == 3
        assert summary["files"] == ["a_part1.txt", "a_part2.txt"]
        assert "3 point(s)" in str(summary["message"])
