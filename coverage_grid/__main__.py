"""``python -m coverage_grid`` entry point."""

from coverage_grid.cli import main

raise SystemExit(main())
