"""Point-in-polygon filtering of lattice candidates.

Even-odd ray casting in the ``(lon, lat)`` plane against every component
ring of the offset region.  Components of an offset region are disjoint,
so even-odd over all of them equals their union.

Boundary rule: a candidate lying on the boundary counts as inside.  A
point is on the boundary when it is within ``BOUNDARY_TOLERANCE_DEG`` of
where its parallel crosses an edge, of a vertex on its parallel, or of a
horizontal edge on its parallel.

Candidates arrive row by row with a shared latitude, so the crossings of
each parallel are computed once and reused for the whole row.
"""

from __future__ import annotations

import bisect
import logging
from typing import TYPE_CHECKING

from coverage_grid.core.exceptions import PermanentError
from coverage_grid.models.geometry import OffsetPolygon, Polygon, Ring
from coverage_grid.utils.planar import open_ring

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from coverage_grid.models.geometry import GeoPoint

logger = logging.getLogger("coverage_grid.activities.filter_points")

#: Boundary tolerance in degrees (about 0.1 mm).
BOUNDARY_TOLERANCE_DEG = 1e-9


class NoPointsInRegionError(PermanentError):
    """Raised when no candidate falls inside the offset region.

    Attributes:
        candidate_count: Number of candidates that were tested.
    """

    default_stage = "filter_points"
    default_code = "NO_POINTS_IN_REGION"
    context_fields = ("candidate_count",)

    def __init__(self, candidate_count: int, message: str = "") -> None:
        self.candidate_count = candidate_count
        super().__init__(
            message
            or f"None of the {candidate_count} grid point(s) fall inside the inset region"
        )


class PreparedRegion:
    """A region ready for repeated containment tests.

    Args:
        region: An offset region, a polygon (outer ring only) or a ring.
    """

    def __init__(self, region: OffsetPolygon | Polygon | Ring) -> None:
        if isinstance(region, OffsetPolygon):
            rings = region.components
        elif isinstance(region, Polygon):
            rings = (region.outer,)
        else:
            rings = (region,)

        self._edges: list[tuple[float, float, float, float]] = []
        for ring in rings:
            pts = open_ring(ring.lonlat())
            n = len(pts)
            for i in range(n):
                x1, y1 = pts[i]
                x2, y2 = pts[(i + 1) % n]
                self._edges.append((x1, y1, x2, y2))

        bbox = region.bbox
        self._min_lon = bbox.min_lon - BOUNDARY_TOLERANCE_DEG
        self._max_lon = bbox.max_lon + BOUNDARY_TOLERANCE_DEG
        self._min_lat = bbox.min_lat - BOUNDARY_TOLERANCE_DEG
        self._max_lat = bbox.max_lat + BOUNDARY_TOLERANCE_DEG

        self._row_lat: float | None = None
        self._crossings: list[float] = []
        self._touches: list[float] = []
        self._flat_spans: list[tuple[float, float]] = []

    def contains(self, point: GeoPoint) -> bool:
        """Whether *point* is inside the region or on its boundary."""
        x, y = point.lon, point.lat
        if not (self._min_lon <= x <= self._max_lon and self._min_lat <= y <= self._max_lat):
            return False
        if y != self._row_lat:
            self._prepare_row(y)

        if self._on_boundary(x):
            return True
        # Count crossings strictly to the right of x.
        right = len(self._crossings) - bisect.bisect_right(self._crossings, x)
        return right % 2 == 1

    def _prepare_row(self, y: float) -> None:
        crossings: list[float] = []
        touches: list[float] = []
        flat: list[tuple[float, float]] = []
        for x1, y1, x2, y2 in self._edges:
            if (y1 > y) != (y2 > y):
                crossings.append(x1 + (y - y1) * (x2 - x1) / (y2 - y1))
            if y1 == y:
                touches.append(x1)
            if y1 == y2 == y:
                flat.append((min(x1, x2), max(x1, x2)))
        crossings.sort()
        touches.sort()
        self._row_lat = y
        self._crossings = crossings
        self._touches = touches
        self._flat_spans = flat

    def _on_boundary(self, x: float) -> bool:
        for values in (self._crossings, self._touches):
            k = bisect.bisect_left(values, x - BOUNDARY_TOLERANCE_DEG)
            if k < len(values) and values[k] <= x + BOUNDARY_TOLERANCE_DEG:
                return True
        return any(lo - BOUNDARY_TOLERANCE_DEG <= x <= hi + BOUNDARY_TOLERANCE_DEG for lo, hi in self._flat_spans)


def contains(region: OffsetPolygon | Polygon | Ring, point: GeoPoint) -> bool:
    """One-off containment test; prefer ``PreparedRegion`` for many points."""
    return PreparedRegion(region).contains(point)


def iter_inside(
    points: Iterable[GeoPoint],
    region: OffsetPolygon | Polygon | Ring,
) -> Iterator[GeoPoint]:
    """Lazily yield the points inside *region*, preserving order."""
    prepared = PreparedRegion(region)
    for point in points:
        if prepared.contains(point):
            yield point


def filter_inside(
    points: Iterable[GeoPoint],
    region: OffsetPolygon | Polygon | Ring,
) -> tuple[GeoPoint, ...]:
    """Return the ordered sub-sequence of *points* inside *region*.

    Raises:
        NoPointsInRegionError: If no point is inside.
    """
    candidates = tuple(points)
    accepted = tuple(iter_inside(candidates, region))
    logger.info(
        "Candidates filtered | candidates=%d | accepted=%d",
        len(candidates),
        len(accepted),
    )
    if not accepted:
        raise NoPointsInRegionError(len(candidates))
    return accepted
