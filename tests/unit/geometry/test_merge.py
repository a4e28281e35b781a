"""
Tests for submesh merging.
"""

import numpy as np
import pytest

from meshkit.core.mesh import Mesh, SubMesh
from meshkit.geometry.merge import merge_submeshes, unique_name

pytestmark = pytest.mark.unit


class TestUniqueName:
    """Tests for unique_name."""

    def test_free_name(self):
        assert unique_name("part_merged", {"other"}) == "part_merged"

    def test_suffix(self):
        assert unique_name("part_merged", {"part_merged"}) == "part_merged_1"
        assert (
            unique_name("part_merged", {"part_merged", "part_merged_1"})
            == "part_merged_2"
        )


class TestMergeSubmeshes:
    """Tests for merge_submeshes."""

    def test_source_layout(self, multi_texcoord_mesh):
        assert multi_texcoord_mesh.submesh_count == 2
        first = multi_texcoord_mesh.submesh_by_index(0).lock()
        assert first.vertex_count == 3
        assert first.texcoord_set_count == 2
        second = multi_texcoord_mesh.submesh_by_index(1).lock()
        assert second.texcoord_set_count == 3
        assert second.texcoord_count_by_set(2) == 3

    def test_merge_multiple_texcoord_sets(self, multi_texcoord_mesh):
        merged = merge_submeshes(multi_texcoord_mesh)

        assert merged.name
        assert merged.submesh_count == 1
        submesh = merged.submesh_by_index(0).lock()
        assert submesh.name

        assert submesh.vertex_count == 6
        assert submesh.normal_count == 6
        assert submesh.index_count == 6
        assert submesh.texcoord_set_count == 3
        for s in range(3):
            assert submesh.texcoord_count_by_set(s) == 6

        np.testing.assert_array_equal(
            submesh.vertices,
            [[0, 0, 0], [10, 0, 0], [10, 10, 0], [10, 0, 0], [20, 0, 0], [20, 10, 0]],
        )
        np.testing.assert_array_equal(submesh.normals, [[0, 0, 1]] * 6)
        assert [submesh.index(i) for i in range(6)] == [0, 1, 2, 3, 4, 5]

        np.testing.assert_allclose(submesh.texcoord_sets[0], [[0, 1]] * 6)
        np.testing.assert_allclose(
            submesh.texcoord_sets[1],
            [[0, 1], [0, 1], [0, 1], [0, 0.5], [0, 0.4], [0, 0.3]],
        )
        np.testing.assert_allclose(
            submesh.texcoord_sets[2],
            [[0, 0], [0, 0], [0, 0], [0, 0.8], [0, 0.7], [0, 0.6]],
        )

    def test_source_untouched(self, multi_texcoord_mesh):
        merge_submeshes(multi_texcoord_mesh)
        assert multi_texcoord_mesh.submesh_count == 2
        assert multi_texcoord_mesh.is_valid

    def test_indices_rebased(self, box_submesh):
        moved = box_submesh.copy()
        moved.translate([2, 0, 0])
        merged = merge_submeshes(Mesh("pair", [box_submesh, moved]))
        submesh = merged.submesh_by_index(0).lock()

        assert submesh.vertex_count == 16
        assert submesh.index_count == 72
        np.testing.assert_array_equal(submesh.indices[36:], box_submesh.indices + 8)
        np.testing.assert_allclose(submesh.max, [3, 1, 1])

    def test_names(self, multi_texcoord_mesh):
        merged = merge_submeshes(multi_texcoord_mesh)
        assert merged.name == "multiple_texture_coordinates_triangle_merged"
        assert merged.submesh_by_index(0).lock().name == (
            "multiple_texture_coordinates_triangle_merged_submesh"
        )

    def test_name_unique_against_existing(self, multi_texcoord_mesh):
        taken = ["multiple_texture_coordinates_triangle_merged"]
        merged = merge_submeshes(multi_texcoord_mesh, existing_names=taken)
        assert merged.name == "multiple_texture_coordinates_triangle_merged_1"

    def test_unnamed_source(self, box_submesh):
        merged = merge_submeshes(Mesh("", [box_submesh]))
        assert merged.name == "merged_mesh"

    def test_explicit_name(self, box_submesh):
        merged = merge_submeshes(Mesh("m", [box_submesh]), name="combined")
        assert merged.name == "combined"

    def test_empty_mesh(self):
        merged = merge_submeshes(Mesh("nothing"))
        assert merged.submesh_count == 1
        submesh = merged.submesh_by_index(0).lock()
        assert submesh.vertex_count == 0
        assert submesh.index_count == 0
        assert submesh.texcoord_set_count == 0

    def test_first_material_kept(self, box_submesh):
        plain = box_submesh.copy()
        painted = SubMesh(
            vertices=box_submesh.vertices,
            indices=box_submesh.indices,
            material="red",
        )
        merged = merge_submeshes(Mesh("m", [plain, painted]))
        assert merged.submesh_by_index(0).lock().material == "red"
