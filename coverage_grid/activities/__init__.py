"""Pipeline stage functions.

Each module implements one stage as plain functions over the models in
``coverage_grid.models``:

- extract_points: raw rows → coordinates
- convex_hull: coordinates → hull ring
- normalize_boundary: any boundary input → one polygon
- offset_polygon: inward offset by the coverage radius
- generate_grid: candidate lattice over a bounding box
- filter_points: keep candidates inside the offset region
- chunk_results: format and batch accepted points
- read_rows, load_boundary: file readers used by hosts
"""
