"""
Planar polygon utilities — orientation, containment and triangulation.

Everything here is a pure function over 2D point lists:

- ``signed_area`` / ``ensure_ccw`` / ``ensure_cw`` — shoelace orientation
- ``classify_point`` / ``point_in_polygon`` — containment via **pyclipper**
  (crossing-number test on integer-scaled coordinates, with an explicit
  on-boundary result)
- ``triangulate_polygon_with_holes`` — ear clipping (Eberly, "Triangulation
  by Ear Clipping") after bridging each hole into the outer ring

Triangles are returned as index triples into the concatenation
``outer + holes[0] + holes[1] + ...`` in the order the caller supplied, so the
caller can map them back to its own vertex buffers. Output triangles are
counter-clockwise.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np
import pyclipper

from meshkit.core.exceptions import DegenerateGeometryError, InvalidInputError

Point2D = Tuple[float, float]
Polygon = List[Point2D]
Triangle = Tuple[int, int, int]

# pyclipper works on integer coordinates; a polygon's larger extent is mapped
# onto this many clipper units, whatever its absolute size
_CLIPPER_RANGE = 1 << 30


def _clipper_frame(polygon: Sequence[Point2D]) -> Tuple[float, float, float]:
    """Origin and scale that map *polygon*'s bounding box onto the clipper range."""
    xs = [p[0] for p in polygon]
    ys = [p[1] for p in polygon]
    extent = max(max(xs) - min(xs), max(ys) - min(ys))
    scale = _CLIPPER_RANGE / extent if extent > 0 else 1.0
    return min(xs), min(ys), scale


def _to_clipper(
    polygon: Sequence[Point2D], frame: Tuple[float, float, float]
) -> List[Tuple[int, int]]:
    ox, oy, scale = frame
    return [(int(round((x - ox) * scale)), int(round((y - oy) * scale)))
            for x, y in polygon]


def signed_area(polygon: Sequence[Point2D]) -> float:
    """Signed area (positive = CCW, negative = CW)."""
    area = 0.0
    n = len(polygon)
    for i in range(n):
        j = (i + 1) % n
        area += polygon[i][0] * polygon[j][1]
        area -= polygon[j][0] * polygon[i][1]
    return area / 2.0


def ensure_ccw(polygon: Sequence[Point2D]) -> Polygon:
    """Return the polygon counter-clockwise."""
    if signed_area(polygon) < 0:
        return list(reversed(polygon))
    return list(polygon)


def ensure_cw(polygon: Sequence[Point2D]) -> Polygon:
    """Return the polygon clockwise."""
    if signed_area(polygon) > 0:
        return list(reversed(polygon))
    return list(polygon)


def _as_point(point: object) -> Point2D:
    if isinstance(point, (str, bytes)):
        raise InvalidInputError("Path points must be (x, y) pairs", details={"point": point})
    try:
        coords = [float(c) for c in point]
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            "Path points must be (x, y) pairs", details={"point": repr(point)}
        ) from e
    if len(coords) != 2:
        raise InvalidInputError("Path points must be 2D", details={"point": coords})
    x, y = coords
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidInputError("Path points must be finite", details={"point": coords})
    return x, y


def normalize_ring(points: Sequence[Sequence[float]], tolerance: float = 1e-9) -> Polygon:
    """
    Turn a sub-path into an implicitly closed ring.

    Consecutive duplicate points are dropped, as is a closing point that
    repeats the first one.

    Raises:
        InvalidInputError: If the sub-path is not a sequence of finite 2D
            coordinates
    """
    if isinstance(points, (str, bytes)):
        raise InvalidInputError("Sub-path must be a sequence of points")
    try:
        raw = list(points)
    except TypeError as e:
        raise InvalidInputError(
            "Sub-path must be a sequence of points", details={"subpath": repr(points)}
        ) from e

    ring: Polygon = []
    for point in raw:
        x, y = _as_point(point)
        if ring and _coincident(ring[-1], (x, y), tolerance):
            continue
        ring.append((x, y))
    while len(ring) > 1 and _coincident(ring[0], ring[-1], tolerance):
        ring.pop()
    return ring


def classify_point(point: Point2D, polygon: Sequence[Point2D]) -> int:
    """
    Locate *point* relative to *polygon*.

    Coordinates are scaled relative to the polygon's own extent, so the
    result does not depend on the absolute size of the geometry.

    Returns:
        1 if inside, 0 if outside, -1 if on the boundary
    """
    xs = [p[0] for p in polygon]
    ys = [p[1] for p in polygon]
    x, y = point
    if x < min(xs) or x > max(xs) or y < min(ys) or y > max(ys):
        return 0
    frame = _clipper_frame(polygon)
    scaled_point = _to_clipper([point], frame)[0]
    return pyclipper.PointInPolygon(scaled_point, _to_clipper(polygon, frame))


def point_in_polygon(point: Point2D, polygon: Sequence[Point2D]) -> bool:
    """True if *point* lies strictly inside *polygon*."""
    return classify_point(point, polygon) == 1


def representative_point(ring: Sequence[Point2D], other: Sequence[Point2D]) -> Point2D:
    """
    Pick a point of *ring* that does not sit on the boundary of *other*.

    Vertices are tried first, then edge midpoints. Falls back to the first
    vertex when every candidate touches *other*.
    """
    n = len(ring)
    candidates = list(ring) + [
        ((ring[i][0] + ring[(i + 1) % n][0]) / 2.0, (ring[i][1] + ring[(i + 1) % n][1]) / 2.0)
        for i in range(n)
    ]
    for candidate in candidates:
        if classify_point(candidate, other) != -1:
            return candidate
    return ring[0]


def _coincident(a: Point2D, b: Point2D, tolerance: float) -> bool:
    return abs(a[0] - b[0]) <= tolerance and abs(a[1] - b[1]) <= tolerance


def _orient(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> float:
    """Twice the signed area of triangle abc (> 0 when counter-clockwise)."""
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


# ---------------------------------------------------------------------------
# Triangulation
# ---------------------------------------------------------------------------

def triangulate_polygon(polygon: Sequence[Point2D], tolerance: float = 1e-12) -> List[Triangle]:
    """Triangulate a simple polygon without holes. See ``triangulate_polygon_with_holes``."""
    return triangulate_polygon_with_holes(polygon, (), tolerance)


def triangulate_polygon_with_holes(
    outer: Sequence[Point2D],
    holes: Sequence[Sequence[Point2D]] = (),
    tolerance: float = 1e-12,
) -> List[Triangle]:
    """
    Triangulate a polygon with holes by ear clipping.

    1. Orient the outer ring CCW and every hole CW (by index order, the
       caller's points are not reordered).
    2. Bridge holes into the outer ring, rightmost hole first, through a
       mutually visible vertex pair.
    3. Clip ears from the resulting weakly simple ring.

    Args:
        outer: Outer boundary, implicitly closed.
        holes: Hole boundaries lying inside *outer*.
        tolerance: Relative area tolerance for collinearity tests.

    Returns:
        CCW triangles as indices into ``outer + holes[0] + holes[1] + ...``

    Raises:
        DegenerateGeometryError: If the outer ring or a hole has no area, or
            no valid ear can be found
    """
    points: list[Point2D] = [tuple(p) for p in outer]
    offsets = [0]
    for hole in holes:
        offsets.append(len(points))
        points.extend(tuple(p) for p in hole)
    coords = np.asarray(points, dtype=np.float64)

    if len(outer) < 3:
        raise DegenerateGeometryError(
            "Outer boundary needs at least 3 points", details={"points": len(outer)}
        )

    span = float(np.max(coords.max(axis=0) - coords.min(axis=0))) if len(coords) else 0.0
    eps = tolerance * max(span * span, 1e-300)

    outer_area = signed_area(outer)
    if abs(outer_area) <= eps:
        raise DegenerateGeometryError(
            "Outer boundary has zero area", details={"area": outer_area}
        )
    ring = list(range(len(outer)))
    if outer_area < 0:
        ring.reverse()

    hole_rings: list[list[int]] = []
    for k, hole in enumerate(holes):
        if len(hole) < 3:
            raise DegenerateGeometryError(
                "Hole needs at least 3 points", details={"hole": k, "points": len(hole)}
            )
        area = signed_area(hole)
        if abs(area) <= eps:
            raise DegenerateGeometryError(
                "Hole has zero area", details={"hole": k, "area": area}
            )
        ids = list(range(offsets[k + 1], offsets[k + 1] + len(hole)))
        if area > 0:
            ids.reverse()
        hole_rings.append(ids)

    # rightmost hole first so earlier bridges never cross later holes
    hole_rings.sort(key=lambda ids: max(coords[i][0] for i in ids), reverse=True)
    for hole_ids in hole_rings:
        ring = _bridge_hole(ring, hole_ids, coords, eps)

    return _clip_ears(ring, coords, eps)


def _bridge_hole(ring: list[int], hole: list[int], coords: np.ndarray, eps: float) -> list[int]:
    """Splice *hole* (CW) into *ring* (CCW) through a visible vertex pair."""
    m_pos = max(range(len(hole)), key=lambda i: (coords[hole[i]][0], -coords[hole[i]][1]))
    m = coords[hole[m_pos]]
    mx, my = float(m[0]), float(m[1])

    # cast a ray in +x from M, find the closest edge it hits
    best_x = math.inf
    best_edge: tuple[int, int] | None = None
    n = len(ring)
    for i in range(n):
        a = coords[ring[i]]
        b = coords[ring[(i + 1) % n]]
        if (a[1] > my) == (b[1] > my) and a[1] != my and b[1] != my:
            continue
        if a[1] == b[1]:
            if a[1] != my:
                continue
            x = min(a[0], b[0]) if min(a[0], b[0]) >= mx else max(a[0], b[0])
        else:
            x = a[0] + (my - a[1]) * (b[0] - a[0]) / (b[1] - a[1])
        if x < mx:
            continue
        if x < best_x:
            best_x = x
            best_edge = (i, (i + 1) % n)

    if best_edge is None:
        raise DegenerateGeometryError(
            "Hole is not enclosed by the outer boundary", details={"hole_vertex": [mx, my]}
        )

    i_a, i_b = best_edge
    a, b = coords[ring[i_a]], coords[ring[i_b]]
    hit = (best_x, my)
    snap = math.sqrt(eps)
    if _coincident((a[0], a[1]), hit, snap):
        bridge_pos = i_a
    elif _coincident((b[0], b[1]), hit, snap):
        bridge_pos = i_b
    else:
        p_pos = i_a if a[0] > b[0] else i_b
        p = coords[ring[p_pos]]
        bridge_pos = p_pos
        # any reflex ring vertex inside triangle (M, hit, P) blocks P
        blockers = []
        for j in range(n):
            if j == p_pos:
                continue
            v = coords[ring[j]]
            if not _is_reflex(ring, j, coords, eps):
                continue
            if _point_in_triangle(v, m, hit, p, eps):
                angle = math.atan2(abs(v[1] - my), v[0] - mx)
                distance = (v[0] - mx) ** 2 + (v[1] - my) ** 2
                blockers.append((angle, distance, j))
        if blockers:
            blockers.sort()
            bridge_pos = blockers[0][2]

    # a position may be duplicated by earlier bridges; choose the copy whose
    # interior cone contains M
    if not _locally_inside(ring, bridge_pos, m, coords):
        target = coords[ring[bridge_pos]]
        for j in range(n):
            if j == bridge_pos or not np.array_equal(coords[ring[j]], target):
                continue
            if _locally_inside(ring, j, m, coords):
                bridge_pos = j
                break

    hole_cycle = hole[m_pos:] + hole[:m_pos]
    return (
        ring[: bridge_pos + 1]
        + hole_cycle
        + [hole[m_pos], ring[bridge_pos]]
        + ring[bridge_pos + 1:]
    )


def _is_reflex(ring: list[int], pos: int, coords: np.ndarray, eps: float) -> bool:
    n = len(ring)
    prev_v = coords[ring[(pos - 1) % n]]
    curr_v = coords[ring[pos]]
    next_v = coords[ring[(pos + 1) % n]]
    return _orient(prev_v, curr_v, next_v) < -eps


def _locally_inside(ring: list[int], pos: int, point: np.ndarray, coords: np.ndarray) -> bool:
    """True if *point* lies within the interior angle of the CCW ring at *pos*."""
    n = len(ring)
    prev_v = coords[ring[(pos - 1) % n]]
    curr_v = coords[ring[pos]]
    next_v = coords[ring[(pos + 1) % n]]
    if _orient(prev_v, curr_v, next_v) >= 0:
        return _orient(curr_v, next_v, point) >= 0 and _orient(prev_v, curr_v, point) >= 0
    return _orient(curr_v, next_v, point) >= 0 or _orient(prev_v, curr_v, point) >= 0


def _point_in_triangle(p, a, b, c, eps: float) -> bool:
    """Inclusive point-in-triangle test for a triangle of either winding."""
    d1 = _orient(a, b, p)
    d2 = _orient(b, c, p)
    d3 = _orient(c, a, p)
    has_neg = d1 < -eps or d2 < -eps or d3 < -eps
    has_pos = d1 > eps or d2 > eps or d3 > eps
    return not (has_neg and has_pos)


def _clip_ears(ring: list[int], coords: np.ndarray, eps: float) -> List[Triangle]:
    triangles: list[Triangle] = []
    remaining = list(ring)

    while len(remaining) > 3:
        n = len(remaining)
        clipped = False
        for i in range(n):
            prev_id = remaining[(i - 1) % n]
            curr_id = remaining[i]
            next_id = remaining[(i + 1) % n]
            if _is_ear(remaining, i, coords, eps):
                triangles.append((prev_id, curr_id, next_id))
                del remaining[i]
                clipped = True
                break
        if clipped:
            continue

        # no proper ear: drop a collinear (zero-area) vertex and retry
        for i in range(n):
            a = coords[remaining[(i - 1) % n]]
            b = coords[remaining[i]]
            c = coords[remaining[(i + 1) % n]]
            if abs(_orient(a, b, c)) <= eps:
                del remaining[i]
                clipped = True
                break
        if not clipped:
            raise DegenerateGeometryError(
                "Ear clipping failed; polygon may be self-intersecting",
                details={"remaining_vertices": n},
            )

    if len(remaining) == 3:
        a, b, c = (coords[j] for j in remaining)
        if _orient(a, b, c) > eps:
            triangles.append((remaining[0], remaining[1], remaining[2]))

    if not triangles:
        raise DegenerateGeometryError("Triangulation produced no triangles")
    return triangles


def _is_ear(remaining: list[int], i: int, coords: np.ndarray, eps: float) -> bool:
    n = len(remaining)
    prev_id = remaining[(i - 1) % n]
    curr_id = remaining[i]
    next_id = remaining[(i + 1) % n]
    a, b, c = coords[prev_id], coords[curr_id], coords[next_id]
    if _orient(a, b, c) <= eps:
        return False
    corners = (tuple(a), tuple(b), tuple(c))
    for j in range(n):
        other = remaining[j]
        if other in (prev_id, curr_id, next_id):
            continue
        p = coords[other]
        if tuple(p) in corners:
            continue
        if _point_in_triangle(p, a, b, c, eps):
            return False
    return True
