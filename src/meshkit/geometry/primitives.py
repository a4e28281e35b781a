"""
Primitive shape generators.

Each generator returns a Mesh with a single SubMesh carrying normals and, where
it makes sense, one UV texcoord set. Curved shapes are tessellated by trimesh;
the box and plane are built directly so every face gets its own vertices and
a flat normal.
"""

import math
from typing import Sequence

import numpy as np
import trimesh

from meshkit.core.exceptions import InvalidInputError
from meshkit.core.mesh import Mesh, SubMesh

# (normal, u axis, v axis) per box face
_BOX_FACES = (
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, -1, 0), (0, 0, 1)),
    ((0, 1, 0), (-1, 0, 0), (0, 0, 1)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
    ((0, 0, -1), (-1, 0, 0), (0, 1, 0)),
)


def _require_positive(**values: float) -> None:
    for key, value in values.items():
        if not value > 0:
            raise InvalidInputError(f"{key} must be positive", details={key: value})


def create_box(
    name: str,
    size: Sequence[float] = (1.0, 1.0, 1.0),
    uv_coords: Sequence[float] = (1.0, 1.0),
) -> Mesh:
    """
    Axis-aligned box centered on the origin: 24 vertices, 12 triangles.

    Args:
        name: Mesh name
        size: Box extents along x, y, z
        uv_coords: UV scale applied to every face
    """
    sx, sy, sz = (float(v) for v in size)
    _require_positive(size_x=sx, size_y=sy, size_z=sz)
    half = np.array([sx, sy, sz]) / 2.0
    us, vs = (float(v) for v in uv_coords)

    vertices, normals, uvs, indices = [], [], [], []
    for normal, u_axis, v_axis in _BOX_FACES:
        n, u, v = (np.array(a, dtype=np.float64) for a in (normal, u_axis, v_axis))
        base = len(vertices)
        for cu, cv in ((-1, -1), (1, -1), (1, 1), (-1, 1)):
            vertices.append((n + cu * u + cv * v) * half)
            normals.append(n)
            uvs.append(((cu + 1) / 2.0 * us, (1 - cv) / 2.0 * vs))
        indices.extend((base, base + 1, base + 2, base, base + 2, base + 3))

    submesh = SubMesh(vertices, normals, indices, [uvs], name=f"{name}_submesh")
    return Mesh(name=name, submeshes=[submesh])


def create_sphere(name: str, radius: float = 1.0, rings: int = 16, segments: int = 32) -> Mesh:
    """UV sphere centered on the origin with spherical texture coordinates."""
    _require_positive(radius=radius, rings=rings, segments=segments)
    tmesh = trimesh.creation.uv_sphere(radius=radius, count=[int(rings), int(segments)])
    vertices = np.asarray(tmesh.vertices, dtype=np.float64)
    normals = vertices / np.linalg.norm(vertices, axis=1, keepdims=True)
    u = np.arctan2(normals[:, 1], normals[:, 0]) / (2.0 * math.pi) + 0.5
    v = np.arccos(np.clip(normals[:, 2], -1.0, 1.0)) / math.pi
    submesh = SubMesh(
        vertices,
        normals,
        np.asarray(tmesh.faces).reshape(-1),
        [np.column_stack([u, v])],
        name=f"{name}_submesh",
    )
    return Mesh(name=name, submeshes=[submesh])


def create_cylinder(
    name: str, radius: float = 1.0, height: float = 1.0, segments: int = 32
) -> Mesh:
    """Closed cylinder along Z, centered on the origin."""
    _require_positive(radius=radius, height=height, segments=segments)
    tmesh = trimesh.creation.cylinder(radius=radius, height=height, sections=int(segments))
    submesh = SubMesh(
        np.asarray(tmesh.vertices),
        np.asarray(tmesh.vertex_normals),
        np.asarray(tmesh.faces).reshape(-1),
        name=f"{name}_submesh",
    )
    return Mesh(name=name, submeshes=[submesh])


def create_plane(
    name: str,
    size: Sequence[float] = (1.0, 1.0),
    segments: Sequence[int] = (1, 1),
    uv_tile: Sequence[float] = (1.0, 1.0),
) -> Mesh:
    """Subdivided plane in XY facing +Z, centered on the origin."""
    width, depth = (float(v) for v in size)
    nx, ny = (int(v) for v in segments)
    _require_positive(width=width, depth=depth, segments_x=nx, segments_y=ny)

    xs = np.linspace(-width / 2.0, width / 2.0, nx + 1)
    ys = np.linspace(-depth / 2.0, depth / 2.0, ny + 1)
    gx, gy = np.meshgrid(xs, ys)
    vertices = np.column_stack([gx.ravel(), gy.ravel(), np.zeros(gx.size)])
    normals = np.tile([0.0, 0.0, 1.0], (len(vertices), 1))
    uvs = np.column_stack([
        (gx.ravel() / width + 0.5) * uv_tile[0],
        (0.5 - gy.ravel() / depth) * uv_tile[1],
    ])

    indices = []
    for j in range(ny):
        for i in range(nx):
            a = j * (nx + 1) + i
            b, c, d = a + 1, a + nx + 2, a + nx + 1
            indices.extend((a, b, c, a, c, d))

    submesh = SubMesh(vertices, normals, indices, [uvs], name=f"{name}_submesh")
    return Mesh(name=name, submeshes=[submesh])
