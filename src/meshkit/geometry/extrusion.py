"""
Polyline extrusion — turn planar paths into a closed prism.

A path is a list of sub-paths (2D point lists). Sub-paths are sorted into
boundaries and holes by nesting depth, each boundary is triangulated together
with its holes for the bottom (z = 0) and top (z = height) caps, and every
boundary edge gets a vertical wall quad.

Caps and walls never share vertices: cap vertices carry ±Z normals, wall
vertices carry the outward XY normal of their edge, so each position appears
once per face it belongs to.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import List, Sequence

from meshkit.core.exceptions import DegenerateGeometryError, InvalidInputError
from meshkit.core.logging import get_logger
from meshkit.core.mesh import Mesh, SubMesh
from meshkit.geometry.polygon import (
    Point2D,
    Polygon,
    classify_point,
    normalize_ring,
    representative_point,
    signed_area,
    triangulate_polygon_with_holes,
)

logger = get_logger(__name__)

Path2D = Sequence[Sequence[Sequence[float]]]


@dataclass
class CapRegion:
    """An outer boundary and the holes cut out of it."""

    outer: Polygon
    holes: List[Polygon] = field(default_factory=list)


def classify_subpaths(rings: Sequence[Polygon]) -> List[CapRegion]:
    """
    Group rings into cap regions by nesting depth.

    A ring contained in an even number of other rings is a boundary; one
    contained in an odd number is a hole of its innermost container. The order
    of rings in the path does not matter.

    Args:
        rings: Normalized, implicitly closed rings.

    Returns:
        One CapRegion per boundary, in path order
    """
    count = len(rings)
    containers: list[list[int]] = [[] for _ in range(count)]
    for i in range(count):
        for j in range(count):
            if i == j:
                continue
            point = representative_point(rings[i], rings[j])
            if classify_point(point, rings[j]) == 1:
                containers[i].append(j)

    depth = [len(c) for c in containers]
    regions: dict[int, CapRegion] = {}
    for i in range(count):
        if depth[i] % 2 == 0:
            regions[i] = CapRegion(outer=list(rings[i]))

    for i in range(count):
        if depth[i] % 2 == 1:
            # innermost container is the one nested deepest
            parent = max(containers[i], key=lambda j: depth[j])
            regions[parent].holes.append(list(rings[i]))

    return [regions[i] for i in sorted(regions)]


def extrude_polyline(
    path: Path2D,
    height: float,
    name: str = "",
    tolerance: float = 1e-9,
) -> Mesh:
    """
    Extrude a set of 2D sub-paths into a watertight solid.

    Args:
        path: Sub-paths, each a sequence of (x, y) points. A sub-path may
            repeat its first point at the end; otherwise it is closed
            implicitly.
        height: Extrusion height along +Z (must be > 0).
        name: Name of the resulting mesh.
        tolerance: Distance below which consecutive points are merged.

    Returns:
        Mesh with a single SubMesh spanning z in [0, height]

    Raises:
        InvalidInputError: If height is not positive or a sub-path has fewer
            than 3 distinct points
        DegenerateGeometryError: If a boundary or hole has zero area or cannot
            be triangulated
    """
    if not isinstance(height, numbers.Real) or not math.isfinite(height) or height <= 0:
        raise InvalidInputError(
            "Extrusion height must be a positive finite number", details={"height": height}
        )
    try:
        subpath_count = len(path)
    except TypeError as e:
        raise InvalidInputError(
            "Path must be a sequence of sub-paths", details={"path": repr(path)}
        ) from e
    if subpath_count == 0:
        raise InvalidInputError("Path has no sub-paths")

    rings: list[Polygon] = []
    for k, subpath in enumerate(path):
        ring = normalize_ring(subpath, tolerance)
        if len(ring) < 3:
            raise InvalidInputError(
                "Sub-path needs at least 3 distinct points",
                details={"subpath": k, "points": len(ring)},
            )
        area = signed_area(ring)
        if abs(area) <= tolerance * tolerance:
            raise DegenerateGeometryError(
                "Sub-path encloses no area", details={"subpath": k, "area": area}
            )
        rings.append(ring)

    regions = classify_subpaths(rings)

    positions: list[tuple[float, float, float]] = []
    normals: list[tuple[float, float, float]] = []
    indices: list[int] = []
    h = float(height)

    for region in regions:
        triangles = triangulate_polygon_with_holes(region.outer, region.holes)
        points: list[Point2D] = list(region.outer)
        for hole in region.holes:
            points.extend(hole)

        base = len(positions)
        for x, y in points:
            positions.append((x, y, 0.0))
            normals.append((0.0, 0.0, -1.0))
        for a, b, c in triangles:
            indices.extend((base + a, base + c, base + b))

        base = len(positions)
        for x, y in points:
            positions.append((x, y, h))
            normals.append((0.0, 0.0, 1.0))
        for a, b, c in triangles:
            indices.extend((base + a, base + b, base + c))

        # walls: outer rings CCW, holes CW, so the solid is always on the left
        wall_rings = [region.outer if signed_area(region.outer) > 0 else region.outer[::-1]]
        wall_rings += [hole if signed_area(hole) < 0 else hole[::-1] for hole in region.holes]
        for ring in wall_rings:
            _add_walls(ring, h, positions, normals, indices)

    submesh = SubMesh(
        vertices=positions,
        normals=normals,
        indices=indices,
        name=f"{name}_submesh" if name else "extruded_submesh",
    )
    mesh = Mesh(name=name, submeshes=[submesh])

    logger.info(
        "polyline_extruded",
        name=name,
        subpaths=len(rings),
        regions=len(regions),
        holes=sum(len(r.holes) for r in regions),
        vertices=submesh.vertex_count,
        triangles=submesh.triangle_count,
    )
    return mesh


def _add_walls(
    ring: Polygon,
    height: float,
    positions: list[tuple[float, float, float]],
    normals: list[tuple[float, float, float]],
    indices: list[int],
) -> None:
    """Append one outward-facing quad per edge of *ring*."""
    n = len(ring)
    for i in range(n):
        px, py = ring[i]
        qx, qy = ring[(i + 1) % n]
        dx, dy = qx - px, qy - py
        length = math.hypot(dx, dy)
        normal = (dy / length, -dx / length, 0.0)

        base = len(positions)
        positions.extend(((px, py, 0.0), (qx, qy, 0.0), (qx, qy, height), (px, py, height)))
        normals.extend((normal, normal, normal, normal))
        indices.extend((base, base + 1, base + 2, base, base + 2, base + 3))


def extruded_volume(path: Path2D, height: float, tolerance: float = 1e-9) -> float:
    """Expected volume of ``extrude_polyline(path, height)`` (cap area × height)."""
    rings = [normalize_ring(p, tolerance) for p in path]
    area = 0.0
    for region in classify_subpaths(rings):
        area += abs(signed_area(region.outer))
        area -= sum(abs(signed_area(hole)) for hole in region.holes)
    return area * float(height)
