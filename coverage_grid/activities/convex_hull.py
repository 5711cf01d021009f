"""Convex hull construction from scattered points.

Andrew's monotone chain in the ``(lon, lat)`` plane: O(n log n),
deterministic for a given point multiset, and tolerant of duplicates and
collinear points.  Collinear points on hull edges are dropped, so the
output contains only true corners.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coverage_grid.core.constants import MIN_POINTS_FOR_HULL
from coverage_grid.core.exceptions import PermanentError
from coverage_grid.models.geometry import GeoPoint, Ring
from coverage_grid.utils.planar import cross

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger("coverage_grid.activities.convex_hull")


class DegenerateHullError(PermanentError):
    """Raised when the points cannot enclose any area.

    Attributes:
        point_count: Number of distinct input points.
    """

    default_stage = "convex_hull"
    default_code = "DEGENERATE_HULL"
    context_fields = ("point_count",)

    def __init__(self, message: str, *, point_count: int) -> None:
        self.point_count = point_count
        super().__init__(message)


def build_convex_hull(points: Iterable[GeoPoint]) -> Ring:
    """Compute the convex hull of *points*.

    Args:
        points: Three or more points; duplicates and collinear points allowed.

    Returns:
        A closed, counter-clockwise ``Ring`` whose vertices are a subset
        of *points*.

    Raises:
        DegenerateHullError: If fewer than 3 distinct points are given or
            all points are collinear.
    """
    distinct = sorted({p.as_lonlat() for p in points})
    if len(distinct) < MIN_POINTS_FOR_HULL:
        msg = (
            f"Cannot build a polygon from {len(distinct)} distinct point(s); "
            f"need at least {MIN_POINTS_FOR_HULL}"
        )
        raise DegenerateHullError(msg, point_count=len(distinct))

    lower: list[tuple[float, float]] = []
    for p in distinct:
        while len(lower) >= 2 and cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: list[tuple[float, float]] = []
    for p in reversed(distinct):
        while len(upper) >= 2 and cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    # Each chain ends where the other begins.
    hull = lower[:-1] + upper[:-1]
    if len(hull) < MIN_POINTS_FOR_HULL:
        msg = f"All {len(distinct)} distinct points are collinear; no polygon can enclose them"
        raise DegenerateHullError(msg, point_count=len(distinct))

    logger.info(
        "Convex hull built | input_points=%d | hull_vertices=%d",
        len(distinct),
        len(hull),
    )
    return Ring.from_lonlat(hull)
