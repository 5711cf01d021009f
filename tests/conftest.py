"""Shared pytest fixtures for the coverage grid test suite."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from coverage_grid.models.geometry import Ring
from coverage_grid.utils.projection import LocalProjection

# ---------------------------------------------------------------------------
# Boundary fixtures
# ---------------------------------------------------------------------------

CENTRE_LON = 30.0
CENTRE_LAT = 50.0


def square_ring(half_width_km: float, lon: float = CENTRE_LON, lat: float = CENTRE_LAT) -> Ring:
    """A geodesic square of the given half width centred on ``(lon, lat)``."""
    h = half_width_km
    corners = LocalProjection(lon, lat).inverse([(-h, -h), (h, -h), (h, h), (-h, h)])
    return Ring.from_lonlat(corners)


def ring_to_geojson(ring: Ring) -> dict[str, object]:
    coords = [[lon, lat] for lon, lat in ring.lonlat()]
    if coords[0] != coords[-1]:
        coords.append(coords[0])
    return {"type": "Polygon", "coordinates": [coords]}


@pytest.fixture()
def square_20km() -> Ring:
    """A 20 km x 20 km square around (50 N, 30 E)."""
    return square_ring(10.0)


@pytest.fixture()
def square_geojson(square_20km: Ring) -> dict[str, object]:
    """The 20 km square as a GeoJSON Polygon mapping."""
    return ring_to_geojson(square_20km)


# ---------------------------------------------------------------------------
# File fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def points_csv(tmp_path: Path) -> Path:
    """CSV of the corners of a roughly 20 km square plus an interior point."""
    path = tmp_path / "points.csv"
    path.write_text(
        "lat,lon\n49.91,29.86\n49.91,30.14\n50.09,30.14\n50.09,29.86\n50.00,30.00\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def boundary_geojson_file(tmp_path: Path, square_geojson: dict[str, object]) -> Path:
    """The 20 km square written as a GeoJSON Feature file."""
    path = tmp_path / "Field Test.geojson"
    feature = {"type": "Feature", "properties": {"name": "Field"}, "geometry": square_geojson}
    path.write_text(json.dumps(feature), encoding="utf-8")
    return path
