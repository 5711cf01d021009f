"""Planar ring primitives shared by the hull, offset and filter stages.

Rings are plain sequences of ``(x, y)`` tuples, open or closed (a closing
duplicate is tolerated everywhere).  The same helpers serve projected
kilometre frames and raw ``(lon, lat)`` degrees.

Responsibilities:
- Orientation: cross product, signed area, convexity
- Cleaning: repeated and collinear vertex removal
- Containment and distance: banded winding numbers, gridded clearance
- Self-intersection: detection, and the loops bounding the positively
  wound region of a self-crossing curve
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

XY = tuple[float, float]

#: Relative sine tolerance below which three vertices count as collinear.
COLLINEAR_TOLERANCE = 1e-10


# ---------------------------------------------------------------------------
# Orientation
# ---------------------------------------------------------------------------


def cross(o: XY, a: XY, b: XY) -> float:
    """Z component of ``(a - o) x (b - o)``; positive for a left turn."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def open_ring(ring: Sequence[XY]) -> list[XY]:
    """Return *ring* without its closing duplicate."""
    pts = list(ring)
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts.pop()
    return pts


def signed_area(ring: Sequence[XY]) -> float:
    """Shoelace area; positive when *ring* is counter-clockwise."""
    pts = open_ring(ring)
    n = len(pts)
    total = 0.0
    for i in range(n):
        x1, y1 = pts[i]
        x2, y2 = pts[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0


def is_convex(ring: Sequence[XY]) -> bool:
    """Whether a counter-clockwise ring is strictly convex and simple.

    Every turn must be a left turn and the turns must sum to one full
    revolution (this rejects star-shaped loops that wind twice).
    """
    pts = open_ring(ring)
    n = len(pts)
    if n < 3:
        return False
    turning = 0.0
    for i in range(n):
        a, b, c = pts[i - 1], pts[i], pts[(i + 1) % n]
        if cross(a, b, c) <= 0:
            return False
        heading_in = math.atan2(b[1] - a[1], b[0] - a[0])
        heading_out = math.atan2(c[1] - b[1], c[0] - b[0])
        turn = heading_out - heading_in
        while turn <= -math.pi:
            turn += 2 * math.pi
        while turn > math.pi:
            turn -= 2 * math.pi
        turning += turn
    return math.isclose(turning, 2 * math.pi, abs_tol=1e-6)


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------


def _is_collinear(a: XY, b: XY, c: XY) -> bool:
    scale = math.dist(a, b) * math.dist(b, c)
    if scale == 0.0:
        return True
    return abs(cross(a, b, c)) <= COLLINEAR_TOLERANCE * scale


def clean_ring(ring: Sequence[XY], tolerance: float = 1e-9) -> list[XY]:
    """Drop repeated vertices (closer than *tolerance*) and collinear vertices.

    Returns an open ring; it may have fewer than 3 vertices when the input
    is degenerate.
    """
    out: list[XY] = []
    for p in open_ring(ring):
        if not out or math.dist(p, out[-1]) > tolerance:
            out.append(p)
    if len(out) > 1 and math.dist(out[0], out[-1]) <= tolerance:
        out.pop()

    changed = True
    while changed and len(out) >= 3:
        changed = False
        for i in range(len(out)):
            if _is_collinear(out[i - 1], out[i], out[(i + 1) % len(out)]):
                del out[i]
                changed = True
                break
    return out



# ---------------------------------------------------------------------------
# Containment and distance
# ---------------------------------------------------------------------------


def point_segment_distance(p: XY, a: XY, b: XY) -> float:
    """Euclidean distance from *p* to the closed segment ``a-b``."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.dist(p, a)
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p[0] - (a[0] + t * dx), p[1] - (a[1] + t * dy))


def ring_segments(ring: Sequence[XY]) -> list[tuple[XY, XY]]:
    """Directed edges of *ring*, closing edge included."""
    pts = open_ring(ring)
    n = len(pts)
    return [(pts[k], pts[(k + 1) % n]) for k in range(n)]


class SegmentBands:
    """Winding numbers of points against a set of directed segments.

    Segments are bucketed into horizontal bands so a query only walks the
    segments whose y-extent reaches the query's band.  The segments need
    not form a single ring; any union of closed curves works.
    """

    def __init__(self, segments: Sequence[tuple[XY, XY]]) -> None:
        self._segments = list(segments)
        ys = [y for a, b in self._segments for y in (a[1], b[1])]
        self._y0 = min(ys, default=0.0)
        self._y1 = max(ys, default=0.0)
        count = max(1, math.isqrt(len(self._segments)))
        height = self._y1 - self._y0
        self._height = height / count if height > 0 else 1.0
        self._bands: list[list[int]] = [[] for _ in range(count)]
        for k, (a, b) in enumerate(self._segments):
            lo = self._band(min(a[1], b[1]))
            hi = self._band(max(a[1], b[1]))
            for band in range(lo, hi + 1):
                self._bands[band].append(k)

    def _band(self, y: float) -> int:
        index = int((y - self._y0) / self._height)
        return min(len(self._bands) - 1, max(0, index))

    def winding_number(self, p: XY) -> int:
        """Signed number of turns the segments make around *p*.

        Counter-clockwise turns count positive.  Upward crossings include
        their lower end and downward crossings their upper end, so shared
        vertices are counted once.
        """
        y = p[1]
        if y < self._y0 or y > self._y1:
            return 0
        wn = 0
        for k in self._bands[self._band(y)]:
            a, b = self._segments[k]
            if a[1] <= y:
                if b[1] > y and cross(a, b, p) > 0:
                    wn += 1
            elif b[1] <= y and cross(a, b, p) < 0:
                wn -= 1
        return wn


class SegmentGrid:
    """Uniform grid over segments for bounded nearest-distance queries."""

    def __init__(self, segments: Sequence[tuple[XY, XY]], cell: float) -> None:
        if cell <= 0:
            msg = f"cell size must be positive, got {cell}"
            raise ValueError(msg)
        self._segments = list(segments)
        self._cell = cell
        self._cells: dict[tuple[int, int], list[int]] = defaultdict(list)
        for k, (a, b) in enumerate(self._segments):
            for key in self._covered_cells(a, b):
                self._cells[key].append(k)

    def _key(self, p: XY) -> tuple[int, int]:
        return (math.floor(p[0] / self._cell), math.floor(p[1] / self._cell))

    def _covered_cells(self, a: XY, b: XY) -> set[tuple[int, int]]:
        steps = max(1, math.ceil(math.dist(a, b) / self._cell))
        keys: set[tuple[int, int]] = set()
        for s in range(steps):
            t0, t1 = s / steps, (s + 1) / steps
            p = (a[0] + t0 * (b[0] - a[0]), a[1] + t0 * (b[1] - a[1]))
            q = (a[0] + t1 * (b[0] - a[0]), a[1] + t1 * (b[1] - a[1]))
            (ix0, iy0), (ix1, iy1) = self._key(p), self._key(q)
            for ix in range(min(ix0, ix1), max(ix0, ix1) + 1):
                for iy in range(min(iy0, iy1), max(iy0, iy1) + 1):
                    keys.add((ix, iy))
        return keys

    def clearance(self, p: XY, limit: float) -> float:
        """Distance from *p* to the nearest segment, capped at *limit*."""
        reach = max(1, math.ceil(limit / self._cell))
        ix, iy = self._key(p)
        best = limit
        seen: set[int] = set()
        for dx in range(-reach, reach + 1):
            for dy in range(-reach, reach + 1):
                for k in self._cells.get((ix + dx, iy + dy), ()):
                    if k in seen:
                        continue
                    seen.add(k)
                    best = min(best, point_segment_distance(p, *self._segments[k]))
        return best


# ---------------------------------------------------------------------------
# Self-intersection
# ---------------------------------------------------------------------------


def segment_intersection(p1: XY, p2: XY, q1: XY, q2: XY) -> tuple[float, float] | None:
    """Intersect segments ``p1-p2`` and ``q1-q2``.

    Returns the parameters ``(t, u)`` of the crossing along each segment
    using half-open ranges ``[0, 1)``, or ``None`` for no crossing.
    Parallel and collinear-overlapping segments return ``None``.
    """
    rx, ry = p2[0] - p1[0], p2[1] - p1[1]
    sx, sy = q2[0] - q1[0], q2[1] - q1[1]
    denom = rx * sy - ry * sx
    if denom == 0.0:
        return None
    qpx, qpy = q1[0] - p1[0], q1[1] - p1[1]
    t = (qpx * sy - qpy * sx) / denom
    u = (qpx * ry - qpy * rx) / denom
    if 0.0 <= t < 1.0 and 0.0 <= u < 1.0:
        return (t, u)
    return None


def find_self_intersections(
    ring: Sequence[XY],
) -> list[tuple[int, float, int, float, XY]]:
    """Find crossings between non-adjacent edges of *ring*.

    Uses a sweep over edges sorted by minimum x so that only edges with
    overlapping x-extents are tested.

    Returns:
        ``(edge_i, t, edge_j, u, point)`` for every crossing, where edge
        ``k`` runs from vertex ``k`` to vertex ``k + 1``.
    """
    pts = open_ring(ring)
    m = len(pts)
    if m < 4:
        return []

    ends = ring_segments(pts)
    min_x = [min(a[0], b[0]) for a, b in ends]
    max_x = [max(a[0], b[0]) for a, b in ends]
    min_y = [min(a[1], b[1]) for a, b in ends]
    max_y = [max(a[1], b[1]) for a, b in ends]

    hits: list[tuple[int, float, int, float, XY]] = []
    active: list[int] = []
    for i in sorted(range(m), key=lambda k: min_x[k]):
        active = [j for j in active if max_x[j] >= min_x[i]]
        for j in active:
            if abs(i - j) == 1 or abs(i - j) == m - 1:
                continue
            if max_y[j] < min_y[i] or max_y[i] < min_y[j]:
                continue
            first, second = (i, j) if i < j else (j, i)
            (a1, a2), (b1, b2) = ends[first], ends[second]
            found = segment_intersection(a1, a2, b1, b2)
            if found is None:
                continue
            t, u = found
            point = (a1[0] + t * (a2[0] - a1[0]), a1[1] + t * (a2[1] - a1[1]))
            hits.append((first, t, second, u, point))
        active.append(i)

    hits.sort(key=lambda h: (h[0], h[1], h[2]))
    return hits


def positive_winding_loops(curve: Sequence[XY], tolerance: float) -> list[list[XY]]:
    """Boundary loops of the region a closed curve winds around positively.

    The curve is cut at every self-crossing.  A piece bounds the region
    ``{q : winding(q) >= 1}`` exactly when the winding number just to its
    left is 1 (the right side is then 0).  Kept pieces are chained end to
    start into closed loops; where several kept pieces leave one node the
    sharpest right turn is taken, which keeps loops that touch at a point
    apart.  Nodes closer than *tolerance* along an edge are merged.

    Returns:
        Open counter-clockwise loops.  Chains that fail to close are
        dropped.
    """
    pts = open_ring(curve)
    m = len(pts)
    if m < 3:
        return []

    hits = find_self_intersections(pts)
    coords: list[XY] = [*pts, *(h[4] for h in hits)]
    on_edge: dict[int, list[tuple[float, int]]] = defaultdict(list)
    for h, (i, t, j, u, _) in enumerate(hits):
        on_edge[i].append((t, m + h))
        on_edge[j].append((u, m + h))

    parent = list(range(len(coords)))

    def find(node: int) -> int:
        while parent[node] != node:
            parent[node] = parent[parent[node]]
            node = parent[node]
        return node

    chains: list[list[int]] = []
    for k in range(m):
        chain = [k, *(node for _, node in sorted(on_edge.get(k, ()))), (k + 1) % m]
        for a, b in zip(chain, chain[1:]):
            if math.dist(coords[a], coords[b]) <= tolerance:
                parent[find(b)] = find(a)
        chains.append(chain)

    bands = SegmentBands(ring_segments(pts))
    kept: list[tuple[int, int, XY, XY]] = []
    for chain in chains:
        for a, b in zip(chain, chain[1:]):
            start, end = find(a), find(b)
            if start == end:
                continue
            p, q = coords[a], coords[b]
            length = math.dist(p, q)
            nudge = min(tolerance, 0.25 * length) / length
            side = (
                (p[0] + q[0]) / 2.0 - (q[1] - p[1]) * nudge,
                (p[1] + q[1]) / 2.0 + (q[0] - p[0]) * nudge,
            )
            if bands.winding_number(side) == 1:
                kept.append((start, end, p, q))

    return _chain_pieces(kept)


def _chain_pieces(kept: list[tuple[int, int, XY, XY]]) -> list[list[XY]]:
    outgoing: dict[int, list[int]] = defaultdict(list)
    for index, piece in enumerate(kept):
        outgoing[piece[0]].append(index)
    used = [False] * len(kept)

    def next_piece(current: int) -> int | None:
        _, node, p, q = kept[current]
        options = [i for i in outgoing.get(node, ()) if not used[i]]
        if len(options) <= 1:
            return options[0] if options else None
        heading = (q[0] - p[0], q[1] - p[1])

        def turn(i: int) -> float:
            a, b = kept[i][2], kept[i][3]
            out = (b[0] - a[0], b[1] - a[1])
            return math.atan2(
                heading[0] * out[1] - heading[1] * out[0],
                heading[0] * out[0] + heading[1] * out[1],
            )

        return min(options, key=turn)

    loops: list[list[XY]] = []
    for first in range(len(kept)):
        if used[first]:
            continue
        used[first] = True
        chain = [first]
        starts = {kept[first][0]: 0}
        node = kept[first][1]
        while chain:
            if node in starts:
                cut = starts[node]
                loop = chain[cut:]
                loops.append([kept[i][2] for i in loop])
                for i in loop:
                    starts.pop(kept[i][0], None)
                del chain[cut:]
                if not chain:
                    break
            following = next_piece(chain[-1])
            if following is None:
                break
            used[following] = True
            starts[node] = len(chain)
            chain.append(following)
            node = kept[following][1]
    return [loop for loop in loops if len(loop) >= 3]
