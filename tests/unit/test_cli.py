"""Tests for the command-line host."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from coverage_grid.activities.offset_polygon import RegionTooSmallError
from coverage_grid.cli import EXIT_OK, EXIT_PIPELINE_ERROR, EXIT_USAGE, format_error, main
from coverage_grid.providers.base import PlaceLookupError, PlaceResult
from coverage_grid.providers.nominatim import NominatimClient


@pytest.fixture(autouse=True)
def _clean_env():
    with patch.dict(os.environ, {}, clear=True):
        yield


def _lines(output_dir: Path, pattern: str) -> list[str]:
    lines: list[str] = []
    for path in sorted(output_dir.glob(pattern), key=lambda p: int(p.stem.rsplit("part", 1)[1])):
        lines.extend(path.read_text(encoding="utf-8").splitlines())
    return lines


class TestPointsSource:
    """--points input."""

    def test_writes_batches(self, points_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        code = main(["--points", str(points_csv), "--radius-km", "2", "--batch-size", "5", "--output-dir", str(out)])
        assert code == EXIT_OK
        files = sorted(out.glob("points_part*.txt"))
        assert len(files) >= 2
        lines = _lines(out, "points_part*.txt")
        assert all(line.startswith("points:2km:") for line in lines)
        assert files[0].read_text(encoding="utf-8").endswith("\n")

    def test_label_override(self, points_csv: Path, tmp_path: Path) -> None:
        code = main(
            ["--points", str(points_csv), "--radius-km", "2", "--label", "Amur Oblast", "--output-dir", str(tmp_path)]
        )
        assert code == EXIT_OK
        assert (tmp_path / "amur-oblast_part1.txt").exists()
        assert _lines(tmp_path, "amur-oblast_part*.txt")[0].startswith("Amur Oblast:2km:")

    def test_too_few_points(self, tmp_path: Path) -> None:
        path = tmp_path / "few.csv"
        path.write_text("lat,lon\n50.0,30.0\n50.1,30.1\n", encoding="utf-8")
        assert main(["--points", str(path), "--radius-km", "1", "--output-dir", str(tmp_path)]) == EXIT_PIPELINE_ERROR


class TestBoundarySource:
    """--boundary input."""

    def test_geojson_file(self, boundary_geojson_file: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        code = main(["--boundary", str(boundary_geojson_file), "--radius-km", "1", "--output-dir", str(out)])
        assert code == EXIT_OK
        assert (out / "field-test_part1.txt").exists()

    def test_hex_packing_option(self, boundary_geojson_file: Path, tmp_path: Path) -> None:
        square_dir = tmp_path / "square"
        hex_dir = tmp_path / "hex"
        base = ["--boundary", str(boundary_geojson_file), "--radius-km", "1", "--batch-size", "10000"]
        assert main([*base, "--output-dir", str(square_dir)]) == EXIT_OK
        assert main([*base, "--packing", "hex", "--output-dir", str(hex_dir)]) == EXIT_OK
        assert len(_lines(hex_dir, "*_part*.txt")) < len(_lines(square_dir, "*_part*.txt"))

    def test_region_too_small(
        self, boundary_geojson_file: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        code = main(["--boundary", str(boundary_geojson_file), "--radius-km", "50", "--output-dir", str(tmp_path)])
        assert code == EXIT_PIPELINE_ERROR
        assert not list(tmp_path.glob("*_part*.txt"))
        assert "stage=offset_polygon | code=REGION_TOO_SMALL | category=permanent" in caplog.text
        assert "radius_km=50.0" in caplog.text

    def test_unsupported_file(self, tmp_path: Path) -> None:
        path = tmp_path / "region.shp"
        path.write_text("x", encoding="utf-8")
        assert main(["--boundary", str(path), "--radius-km", "1", "--output-dir", str(tmp_path)]) == EXIT_PIPELINE_ERROR


class TestPlaceSource:
    """--place input with the lookup patched out."""

    def test_uses_first_result(self, square_geojson: dict[str, object], tmp_path: Path) -> None:
        places = [PlaceResult(display_name="Testville, Test Region, Nowhere", geojson=square_geojson)]
        with patch.object(NominatimClient, "search", return_value=places) as search:
            code = main(["--place", "Testville", "--radius-km", "1", "--output-dir", str(tmp_path)])
        assert code == EXIT_OK
        search.assert_called_once_with("Testville")
        assert (tmp_path / "testville_part1.txt").exists()

    def test_no_results(self, tmp_path: Path) -> None:
        with patch.object(NominatimClient, "search", return_value=[]):
            code = main(["--place", "Atlantis", "--radius-km", "1", "--output-dir", str(tmp_path)])
        assert code == EXIT_PIPELINE_ERROR

    def test_lookup_failure(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        error = PlaceLookupError("nominatim", "Search failed with HTTP 503")
        with patch.object(NominatimClient, "search", side_effect=error):
            code = main(["--place", "Amur", "--radius-km", "1", "--output-dir", str(tmp_path)])
        assert code == EXIT_PIPELINE_ERROR
        assert "code=PLACE_LOOKUP_FAILED" in caplog.text
        assert "retryable=True | provider=nominatim" in caplog.text


class TestUsageErrors:
    """Argument and environment validation."""

    def test_radius_below_minimum(self, points_csv: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--points", str(points_csv), "--radius-km", "0.2"])
        assert exc_info.value.code == EXIT_USAGE

    def test_source_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--radius-km", "1"])
        assert exc_info.value.code == EXIT_USAGE

    def test_sources_mutually_exclusive(self, points_csv: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--points", str(points_csv), "--place", "Amur", "--radius-km", "1"])
        assert exc_info.value.code == EXIT_USAGE

    def test_batch_size_must_be_positive(self, points_csv: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--points", str(points_csv), "--radius-km", "1", "--batch-size", "0"])
        assert exc_info.value.code == EXIT_USAGE

    def test_bad_environment(self, points_csv: Path) -> None:
        with patch.dict(os.environ, {"COVERAGE_BATCH_SIZE": "abc"}):
            assert main(["--points", str(points_csv), "--radius-km", "1"]) == EXIT_USAGE

    def test_out_of_range_environment(self, points_csv: Path) -> None:
        with patch.dict(os.environ, {"COVERAGE_BATCH_SIZE": "0"}):
            assert main(["--points", str(points_csv), "--radius-km", "1"]) == EXIT_USAGE

    def test_environment_minimum_radius(self, points_csv: Path) -> None:
        with patch.dict(os.environ, {"COVERAGE_MIN_RADIUS_KM": "5"}), pytest.raises(SystemExit) as exc_info:
            main(["--points", str(points_csv), "--radius-km", "2"])
        assert exc_info.value.code == EXIT_USAGE


class TestFormatError:
    """Structured error payload rendering."""

    def test_context_before_message(self) -> None:
        line = format_error(RegionTooSmallError(12.5).to_error_dict())
        assert line.startswith("stage=offset_polygon | code=REGION_TOO_SMALL | category=permanent")
        assert "retryable=False | radius_km=12.5 | message=" in line

    def test_without_context(self) -> None:
        payload = {"stage": "", "code": "", "category": "permanent", "retryable": False, "message": "boom"}
        assert format_error(payload) == "stage= | code= | category=permanent | retryable=False | message=boom"
