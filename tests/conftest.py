"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from meshkit.core.mesh import Mesh, SubMesh
from meshkit.registry import MeshRegistry, reset_registry


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry():
    """A fresh registry, emptied after the test."""
    reg = MeshRegistry()
    yield reg
    reg.remove_all()


@pytest.fixture(autouse=True)
def _reset_default_registry():
    yield
    reset_registry()


@pytest.fixture
def box_submesh():
    """Unit cube with 8 shared corners and 12 outward-wound triangles."""
    vertices = [
        [0, 0, 0],
        [1, 0, 0],
        [1, 1, 0],
        [0, 1, 0],
        [0, 0, 1],
        [1, 0, 1],
        [1, 1, 1],
        [0, 1, 1],
    ]
    indices = [
        0, 2, 1, 0, 3, 2,  # bottom
        4, 5, 6, 4, 6, 7,  # top
        0, 1, 5, 0, 5, 4,  # front
        2, 3, 7, 2, 7, 6,  # back
        0, 4, 7, 0, 7, 3,  # left
        1, 2, 6, 1, 6, 5,  # right
    ]
    return SubMesh(vertices=vertices, indices=indices, name="box")


@pytest.fixture
def multi_texcoord_mesh():
    """Two single-triangle submeshes with 2 and 3 texcoord sets."""
    normals = [[0, 0, 1]] * 3
    first = SubMesh(
        vertices=[[0, 0, 0], [10, 0, 0], [10, 10, 0]],
        normals=normals,
        indices=[0, 1, 2],
        texcoord_sets=[
            [[0, 1], [0, 1], [0, 1]],
            [[0, 1], [0, 1], [0, 1]],
        ],
        name="first",
    )
    second = SubMesh(
        vertices=[[10, 0, 0], [20, 0, 0], [20, 10, 0]],
        normals=normals,
        indices=[0, 1, 2],
        texcoord_sets=[
            [[0, 1], [0, 1], [0, 1]],
            [[0, 0.5], [0, 0.4], [0, 0.3]],
            [[0, 0.8], [0, 0.7], [0, 0.6]],
        ],
        name="second",
    )
    return Mesh(name="multiple_texture_coordinates_triangle", submeshes=[first, second])


@pytest.fixture
def square_with_hole_path():
    """Unit square with a centered square hole, both explicitly closed."""
    return [
        [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)],
        [(0.25, 0.25), (0.25, 0.75), (0.75, 0.75), (0.75, 0.25), (0.25, 0.25)],
    ]


@pytest.fixture
def letter_a_hole():
    return [(2.27467, 1.0967), (1.81094, 2.35418), (2.74009, 2.35418)]


@pytest.fixture
def letter_a_path(letter_a_hole):
    """Outline of the letter "A", hole listed before the outline, neither closed."""
    outline = [
        (2.08173, 0.7599),
        (2.4693, 0.7599),
        (3.4323, 3.28672),
        (3.07689, 3.28672),
        (2.84672, 2.63851),
        (1.7077, 2.63851),
        (1.47753, 3.28672),
        (1.11704, 3.28672),
    ]
    return [list(letter_a_hole), outline]


@pytest.fixture
def l_shape_path():
    return [[(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2)]]
