"""
Tests for approximate convex decomposition.
"""

import types

import numpy as np
import pytest
import trimesh

from meshkit.core.exceptions import InvalidInputError
from meshkit.core.mesh import SubMesh
from meshkit.geometry.decomposition import convex_decomposition
from meshkit.geometry.extrusion import extrude_polyline

pytestmark = [pytest.mark.unit, pytest.mark.geometry]


@pytest.fixture
def l_solid(l_shape_path):
    return extrude_polyline(l_shape_path, 1.0, name="l_solid").submesh_by_index(0).lock()


def _as_trimesh(submesh):
    return trimesh.Trimesh(vertices=np.array(submesh.vertices), faces=np.array(submesh.faces))


def _is_convex(submesh):
    return _as_trimesh(submesh).is_convex


def _volume(submesh):
    return _as_trimesh(submesh).volume


class TestConvexDecomposition:
    """Tests for convex_decomposition."""

    def test_box_is_single_hull(self, box_submesh):
        hulls = convex_decomposition(box_submesh)

        assert len(hulls) == 1
        hull = hulls[0]
        assert hull.vertex_count == 8
        assert hull.normal_count == 8
        assert hull.index_count == 36
        assert hull.name == "box_hull_0"
        np.testing.assert_allclose(hull.min, [0, 0, 0])
        np.testing.assert_allclose(hull.max, [1, 1, 1])

    def test_single_hull_requested(self, l_solid):
        hulls = convex_decomposition(l_solid, max_convex_hulls=1)
        assert len(hulls) == 1
        # hull of an L covers the missing corner
        assert _volume(hulls[0]) == pytest.approx(3.5)

    def test_concave_solid_splits(self, l_solid):
        hulls = convex_decomposition(l_solid, max_convex_hulls=4, resolution=2000)

        assert 2 <= len(hulls) <= 4
        for i, hull in enumerate(hulls):
            assert hull.name == f"l_solid_submesh_hull_{i}"
            assert hull.vertex_count == hull.normal_count
            assert hull.index_count > 0
            assert hull.index_count % 3 == 0
            assert _is_convex(hull)

    @pytest.mark.parametrize("resolution", [1000, 1500, 2000])
    def test_thin_concave_solid_splits(self, l_shape_path, resolution):
        # a 0.5-thick L is 1/7 concave; flat voxel layers must not hide that
        thin = extrude_polyline(l_shape_path, 0.5, name="thin_l").submesh_by_index(0).lock()
        hulls = convex_decomposition(thin, max_convex_hulls=3, resolution=resolution)

        assert 2 <= len(hulls) <= 3
        for hull in hulls:
            assert _is_convex(hull)

    def test_split_hulls_are_tighter_than_single_hull(self, l_solid):
        single = convex_decomposition(l_solid, max_convex_hulls=1)
        hulls = convex_decomposition(l_solid, max_convex_hulls=4, resolution=2000)

        assert len(hulls) >= 2
        assert _volume(single[0]) == pytest.approx(3.5)
        # no single piece spans the missing corner
        assert all(_volume(hull) < 3.0 for hull in hulls)

    def test_hulls_stay_within_input_bounds(self, l_solid):
        hulls = convex_decomposition(l_solid, max_convex_hulls=4, resolution=2000)
        for hull in hulls:
            assert np.all(hull.min >= l_solid.min - 1e-9)
            assert np.all(hull.max <= l_solid.max + 1e-9)

    def test_deterministic(self, l_solid):
        first = convex_decomposition(l_solid, max_convex_hulls=4, resolution=2000)
        second = convex_decomposition(l_solid, max_convex_hulls=4, resolution=2000)

        assert len(first) == len(second)
        for a, b in zip(first, second):
            np.testing.assert_array_equal(a.vertices, b.vertices)
            np.testing.assert_array_equal(a.indices, b.indices)

    def test_respects_max_convex_hulls(self, l_solid):
        hulls = convex_decomposition(l_solid, max_convex_hulls=2, resolution=2000)
        assert 1 <= len(hulls) <= 2

    def test_material_carried_to_hulls(self, box_submesh):
        submesh = SubMesh(
            vertices=box_submesh.vertices,
            indices=box_submesh.indices,
            name="painted",
            material="steel",
        )
        hulls = convex_decomposition(submesh)
        assert hulls[0].material == "steel"

    def test_empty_input(self):
        assert convex_decomposition(SubMesh()) == []

    def test_vertices_without_triangles(self):
        submesh = SubMesh(vertices=[[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]])
        assert convex_decomposition(submesh) == []

    def test_flat_input(self):
        flat = SubMesh(
            vertices=[[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]],
            indices=[0, 1, 2, 0, 2, 3],
        )
        assert convex_decomposition(flat) == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_convex_hulls": 0},
            {"resolution": 0},
            {"concavity_threshold": -0.1},
            {"max_split_candidates": 0},
        ],
    )
    def test_invalid_parameters(self, box_submesh, kwargs):
        with pytest.raises(InvalidInputError):
            convex_decomposition(box_submesh, **kwargs)


class TestPackageExports:
    """Tests for the geometry package namespace."""

    def test_module_and_function_both_reachable(self):
        import meshkit.geometry.decomposition as module
        from meshkit.geometry import convex_decomposition as exported

        assert isinstance(module, types.ModuleType)
        assert exported is module.convex_decomposition
