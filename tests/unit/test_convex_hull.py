"""Tests for convex hull construction.

shapely serves as an independent oracle for hull area.
"""

from __future__ import annotations

import random

import pytest
from shapely.geometry import MultiPoint, Point
from shapely.geometry import Polygon as ShapelyPolygon

from coverage_grid.activities.convex_hull import DegenerateHullError, build_convex_hull
from coverage_grid.models.geometry import GeoPoint
from coverage_grid.utils.planar import cross, signed_area


def _pts(*lonlat: tuple[float, float]) -> list[GeoPoint]:
    return [GeoPoint(lat=lat, lon=lon) for lon, lat in lonlat]


class TestBuildConvexHull:
    """Hull shape and orientation."""

    def test_square_with_interior_point(self) -> None:
        points = _pts((0, 0), (2, 0), (2, 2), (0, 2), (1, 1))
        ring = build_convex_hull(points)
        assert len(ring.vertices) == 4
        assert GeoPoint(1, 1) not in ring.vertices

    def test_counter_clockwise_and_closed(self) -> None:
        ring = build_convex_hull(_pts((0, 0), (0, 2), (2, 2), (2, 0)))
        assert ring.points[0] == ring.points[-1]
        assert signed_area(ring.lonlat()) > 0

    def test_collinear_edge_points_dropped(self) -> None:
        ring = build_convex_hull(_pts((0, 0), (1, 0), (2, 0), (2, 2), (0, 2)))
        assert GeoPoint(lat=0, lon=1) not in ring.vertices
        assert len(ring.vertices) == 4

    def test_duplicates_tolerated(self) -> None:
        ring = build_convex_hull(_pts((0, 0), (0, 0), (1, 0), (1, 0), (0, 1)))
        assert len(ring.vertices) == 3

    def test_deterministic_regardless_of_order(self) -> None:
        points = _pts((0, 0), (3, 1), (2, 4), (-1, 3), (1, 1))
        shuffled = list(reversed(points))
        assert build_convex_hull(points) == build_convex_hull(shuffled)

    def test_random_points_match_shapely(self) -> None:
        rng = random.Random(7)
        points = [GeoPoint(lat=rng.uniform(50, 52), lon=rng.uniform(30, 33)) for _ in range(200)]
        ring = build_convex_hull(points)

        expected = MultiPoint([p.as_lonlat() for p in points]).convex_hull
        assert signed_area(ring.lonlat()) == pytest.approx(expected.area, rel=1e-9)

        # Every vertex is an input point and every input point is enclosed.
        inputs = set(points)
        assert all(v in inputs for v in ring.vertices)
        hull = ShapelyPolygon(ring.lonlat())
        assert all(hull.buffer(1e-9).contains(Point(p.as_lonlat())) for p in points)

    def test_convexity(self) -> None:
        rng = random.Random(11)
        points = [GeoPoint(lat=rng.uniform(-1, 1), lon=rng.uniform(-1, 1)) for _ in range(50)]
        verts = [v.as_lonlat() for v in build_convex_hull(points).vertices]
        n = len(verts)
        assert all(cross(verts[i - 1], verts[i], verts[(i + 1) % n]) > 0 for i in range(n))


class TestDegenerateHull:
    """Inputs that enclose no area."""

    def test_two_distinct_points(self) -> None:
        with pytest.raises(DegenerateHullError) as exc_info:
            build_convex_hull(_pts((0, 0), (1, 1), (1, 1)))
        assert exc_info.value.point_count == 2

    def test_all_collinear(self) -> None:
        with pytest.raises(DegenerateHullError, match="collinear"):
            build_convex_hull(_pts((0, 0), (1, 1), (2, 2), (3, 3)))
