"""Command-line host for the coverage pipeline.

Exactly one boundary source is required:

- ``--points FILE``: CSV/TSV or spreadsheet of scattered coordinates; the region is
  their convex hull.
- ``--boundary FILE``: GeoJSON or KML polygon boundary.
- ``--place QUERY``: administrative boundary looked up by name.

Each emitted batch is written to ``<output-dir>/<batch name>``.

Exit codes: 0 on success, 1 on a pipeline error (stage, code, context and
message logged on one line), 2 on a usage error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from coverage_grid.activities.load_boundary import load_boundary
from coverage_grid.activities.read_rows import read_rows
from coverage_grid.core.config import ConfigValidationError, CoverageConfig
from coverage_grid.core.constants import PACKINGS
from coverage_grid.core.exceptions import PipelineError
from coverage_grid.models.output import OutputBatch, ProgressEvent
from coverage_grid.models.request import CoverageRequest
from coverage_grid.orchestrators.coverage_pipeline import (
    boundary_from_rows,
    build_run_summary,
    generate_coverage,
)
from coverage_grid.providers.nominatim import NominatimClient

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coverage_grid.models.request import BoundarySource

logger = logging.getLogger("coverage_grid.cli")

EXIT_OK = 0
EXIT_PIPELINE_ERROR = 1
EXIT_USAGE = 2


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coverage-grid",
        description="Generate a coverage point grid inside a region boundary.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--points", type=Path, help="CSV/TSV or spreadsheet (.xlsx, .xls) of scattered coordinates")
    source.add_argument("--boundary", type=Path, help="GeoJSON or KML boundary file")
    source.add_argument("--place", help="Place name to look up (OpenStreetMap Nominatim)")

    parser.add_argument(
        "--label",
        help="Region label for output lines (defaults to the file stem or place name)",
    )
    parser.add_argument(
        "--radius-km",
        type=float,
        required=True,
        help="Coverage radius in kilometres",
    )
    parser.add_argument(
        "--packing",
        choices=sorted(PACKINGS),
        help="Lattice packing (default: COVERAGE_PACKING or square)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Lines per output file (default: COVERAGE_BATCH_SIZE or 200)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for the output files (default: current directory)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = CoverageConfig.from_env()
    except (ConfigValidationError, ValueError) as exc:
        logger.error("Invalid environment configuration: %s", exc)
        return EXIT_USAGE

    overrides: dict[str, object] = {}
    if args.packing:
        overrides["packing"] = args.packing
    if args.batch_size is not None:
        if args.batch_size < 1:
            parser.error("--batch-size must be >= 1")
        overrides["batch_size"] = args.batch_size
    if overrides:
        config = replace(config, **overrides)

    if args.radius_km < config.min_radius_km:
        parser.error(f"--radius-km must be at least {config.min_radius_km:g}")

    try:
        return _run(args, config)
    except PipelineError as exc:
        logger.error("Pipeline failed | %s", format_error(exc.to_error_dict()))
        return EXIT_PIPELINE_ERROR
    except OSError as exc:
        logger.error("Cannot write output: %s", exc)
        return EXIT_PIPELINE_ERROR


def format_error(error: Mapping[str, object]) -> str:
    """Render a structured error payload as one pipe-delimited log line."""
    fields = [f"{key}={error[key]}" for key in ("stage", "code", "category", "retryable")]
    context = error.get("context") or {}
    if isinstance(context, Mapping):
        fields.extend(f"{key}={value}" for key, value in context.items())
    fields.append(f"message={error['message']}")
    return " | ".join(fields)


def _run(args: argparse.Namespace, config: CoverageConfig) -> int:
    boundary: BoundarySource
    if args.points is not None:
        boundary = boundary_from_rows(read_rows(args.points))
        default_label = args.points.stem
    elif args.boundary is not None:
        boundary = load_boundary(args.boundary)
        default_label = args.boundary.stem
    else:
        places = NominatimClient.from_config(config).search(args.place)
        if not places:
            logger.error("No polygon boundary found for place %r", args.place)
            return EXIT_PIPELINE_ERROR
        boundary = places[0].geojson
        default_label = places[0].label
        logger.info("Using place %s", places[0].display_name)

    request = CoverageRequest(
        boundary=boundary,
        label=args.label or default_label,
        radius_km=args.radius_km,
    )

    output_dir: Path = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    written: list[OutputBatch] = []
    for item in generate_coverage(request, config=config):
        if isinstance(item, ProgressEvent):
            logger.debug("Progress %d/%d (%.0f%%)", item.processed, item.total, item.fraction * 100)
            continue
        (output_dir / item.name).write_text(item.content + "\n", encoding="utf-8")
        written.append(item)

    summary = build_run_summary(written, label=request.label, radius_km=request.radius_km)
    logger.info("%s Output: %s", summary["message"], output_dir)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
