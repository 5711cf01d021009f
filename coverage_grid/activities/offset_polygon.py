"""Inward offset (negative buffer) of a polygon boundary.

The result is the region of points inside the polygon whose distance to
the boundary is at least the requested radius.

Algorithm:
1. Project the outer ring into a local azimuthal equidistant frame in
   kilometres centred on the polygon centroid (never offset in degrees).
2. Clean repeated/collinear vertices and orient counter-clockwise.
3. Convex ring: clip the ring by every edge's half-plane shifted inward
   by the radius.  For convex polygons this is the exact erosion.
4. Non-convex ring: build a closed curve from every edge shifted inward
   by the radius, joined at each vertex by a clockwise arc around it
   (short across reflex vertices, long way round convex ones).  Every arc
   chord is tangent to the radius circle.  The curve winds once around
   the points at least one radius inside the ring, so the pieces
   with winding number 1 on their left are chained into the result loops.
   Each loop vertex is then checked against the ring edges.
5. Drop loops that collapse below the area tolerance and project back.

An empty result is a normal outcome for small regions or large radii and
is reported as ``RegionTooSmallError``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from coverage_grid.core.exceptions import PermanentError
from coverage_grid.models.geometry import GeometryValidationError, OffsetPolygon, Polygon, Ring
from coverage_grid.models.request import validate_radius_km
from coverage_grid.utils.planar import (
    SegmentBands,
    SegmentGrid,
    clean_ring,
    cross,
    is_convex,
    positive_winding_loops,
    ring_segments,
    signed_area,
)
from coverage_grid.utils.projection import LocalProjection

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("coverage_grid.activities.offset_polygon")

XY = tuple[float, float]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Loops at or below this planar area (km²) are treated as pinched out.
AREA_TOLERANCE_KM2 = 1e-6

#: Vertices closer than this (km) are merged when cleaning rings.
VERTEX_TOLERANCE_KM = 1e-9

#: Arc resolution at vertex joins.
ARC_SEGMENTS_PER_QUADRANT = 8

#: Relative slack when checking a loop's clearance from the boundary.
CLEARANCE_SLACK = 1e-6


class RegionTooSmallError(PermanentError):
    """Raised when the inward offset collapses the region to nothing.

    Attributes:
        radius_km: The offset distance that was requested.
    """

    default_stage = "offset_polygon"
    default_code = "REGION_TOO_SMALL"
    context_fields = ("radius_km",)

    def __init__(self, radius_km: float, message: str = "") -> None:
        self.radius_km = radius_km
        super().__init__(
            message
            or (
                f"The region is too small or too narrow for an inward offset of "
                f"{radius_km:g} km; no area remains"
            )
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def offset_inward(polygon: Polygon | Ring, radius_km: float) -> OffsetPolygon:
    """Offset the outer ring of *polygon* inward by *radius_km*.

    Holes are ignored.

    Args:
        polygon: Polygon (or bare ring) in WGS 84.
        radius_km: Offset distance in kilometres, > 0.

    Returns:
        The offset region, one ring per disjoint component.

    Raises:
        InvalidRadiusError: If *radius_km* is not a positive number.
        RegionTooSmallError: If nothing remains after the offset.
    """
    radius = validate_radius_km(radius_km)
    outer = polygon.outer if isinstance(polygon, Polygon) else polygon

    projection = LocalProjection.centred_on(outer)
    planar = projection.forward(outer.lonlat())
    loops = inset_ring(planar, radius)
    if not loops:
        raise RegionTooSmallError(radius)

    components: list[Ring] = []
    total_area = 0.0
    for loop in loops:
        try:
            components.append(Ring.from_lonlat(projection.inverse(loop)))
        except GeometryValidationError:
            logger.debug("Dropping offset loop that degenerates after unprojection")
            continue
        total_area += signed_area(loop)

    if not components:
        raise RegionTooSmallError(radius)

    logger.info(
        "Offset computed | radius=%.3f km | components=%d | area=%.3f km2 | source_area=%.3f km2",
        radius,
        len(components),
        total_area,
        abs(signed_area(planar)),
    )
    return OffsetPolygon(components=tuple(components), radius_km=radius, area_km2=total_area)


def inset_ring(ring: Sequence[XY], distance: float) -> list[list[XY]]:
    """Planar inward offset of a simple ring.

    Args:
        ring: Simple ring in planar coordinates (any orientation, open or
            closed).
        distance: Offset distance in the ring's units, > 0.

    Returns:
        Open, counter-clockwise loops with area above the tolerance.
        Empty when the region pinches out.
    """
    pts = clean_ring(ring, VERTEX_TOLERANCE_KM)
    if len(pts) < 3:
        return []
    if signed_area(pts) < 0:
        pts.reverse()

    if is_convex(pts):
        raw_loops = [_inset_convex(pts, distance)]
    else:
        raw_loops = _inset_general(pts, distance)

    loops: list[list[XY]] = []
    for raw in raw_loops:
        loop = clean_ring(raw, VERTEX_TOLERANCE_KM)
        if len(loop) >= 3 and signed_area(loop) > AREA_TOLERANCE_KM2:
            loops.append(loop)
    return loops


# ---------------------------------------------------------------------------
# Convex rings: half-plane clipping
# ---------------------------------------------------------------------------


def _inset_convex(pts: list[XY], distance: float) -> list[XY]:
    region = list(pts)
    n = len(pts)
    for i in range(n):
        a = pts[i]
        b = pts[(i + 1) % n]
        length = math.dist(a, b)
        clipped: list[XY] = []
        m = len(region)
        for k in range(m):
            cur = region[k]
            nxt = region[(k + 1) % m]
            side_cur = cross(a, b, cur) / length - distance
            side_nxt = cross(a, b, nxt) / length - distance
            if side_cur >= 0:
                clipped.append(cur)
            if (side_cur >= 0) != (side_nxt >= 0):
                t = side_cur / (side_cur - side_nxt)
                clipped.append((cur[0] + t * (nxt[0] - cur[0]), cur[1] + t * (nxt[1] - cur[1])))
        region = clipped
        if len(region) < 3:
            return []
    return region


# ---------------------------------------------------------------------------
# General rings: swept offset curve + winding classification
# ---------------------------------------------------------------------------


def _inset_general(pts: list[XY], distance: float) -> list[list[XY]]:
    n = len(pts)
    normals: list[XY] = []
    for i in range(n):
        a = pts[i]
        b = pts[(i + 1) % n]
        length = math.dist(a, b)
        normals.append((-(b[1] - a[1]) / length, (b[0] - a[0]) / length))

    raw: list[XY] = []
    for i in range(n):
        for point in _vertex_arc(pts[i], normals[i - 1], normals[i], distance):
            if not raw or point != raw[-1]:
                raw.append(point)

    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    extent = max(max(xs) - min(xs), max(ys) - min(ys), distance)
    loops = positive_winding_loops(raw, VERTEX_TOLERANCE_KM * max(1.0, extent))

    edges = ring_segments(pts)
    source = SegmentBands(edges)
    grid = SegmentGrid(edges, distance)
    minimum = distance * (1.0 - CLEARANCE_SLACK)

    kept: list[list[XY]] = []
    for loop in loops:
        short = [
            v
            for v in loop
            if grid.clearance(v, distance) < minimum or source.winding_number(v) != 1
        ]
        if short:
            logger.warning(
                "Dropping offset loop without clearance | vertices=%d | failing=%d | radius=%.3f",
                len(loop),
                len(short),
                distance,
            )
            continue
        kept.append(loop)
    return kept


def _vertex_arc(vertex: XY, n_in: XY, n_out: XY, distance: float) -> list[XY]:
    """Clockwise arc around *vertex* from the incoming to the outgoing normal.

    Every chord is tangent to the radius circle, so no arc point comes
    closer to the vertex than *distance*.  Reflex vertices get the short
    arc across the inside; convex vertices get the long way round outside.
    """
    start = math.atan2(n_in[1], n_in[0])
    end = math.atan2(n_out[1], n_out[0])
    sweep = (start - end) % (2 * math.pi)
    steps = max(1, math.ceil(sweep / (math.pi / 2) * ARC_SEGMENTS_PER_QUADRANT))
    delta = sweep / steps
    outer_radius = distance / math.cos(delta / 2)

    arc = [(vertex[0] + n_in[0] * distance, vertex[1] + n_in[1] * distance)]
    for j in range(steps):
        angle = start - (j + 0.5) * delta
        arc.append(
            (vertex[0] + math.cos(angle) * outer_radius, vertex[1] + math.sin(angle) * outer_radius)
        )
    arc.append((vertex[0] + n_out[0] * distance, vertex[1] + n_out[1] * distance))
    return arc
