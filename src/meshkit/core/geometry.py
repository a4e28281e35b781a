"""
Geometry interchange for MeshKit.

Converts MeshKit SubMesh/Mesh objects to and from trimesh and COMPAS
representations, and loads/saves mesh files through trimesh. File parsing is
entirely delegated to trimesh; MeshKit only maps the result onto its own
buffers.
"""

from pathlib import Path
from typing import Any

import numpy as np
import trimesh
from compas.datastructures import Mesh as CompasMesh

from meshkit.core.exceptions import GeometryError, LoaderError
from meshkit.core.logging import get_logger
from meshkit.core.mesh import Mesh, SubMesh

logger = get_logger(__name__)


class GeometryConverter:
    """
    Converter between different geometry representations.

    Handles conversion between MeshKit, Trimesh and COMPAS meshes.
    """

    @staticmethod
    def submesh_to_trimesh(submesh: SubMesh) -> trimesh.Trimesh:
        """
        Convert a SubMesh to a Trimesh without merging or reordering vertices.

        The first texcoord set, if any, becomes the trimesh UV channel.

        Args:
            submesh: MeshKit SubMesh

        Returns:
            Trimesh mesh object
        """
        visual = None
        if submesh.texcoord_set_count:
            visual = trimesh.visual.TextureVisuals(uv=np.array(submesh.texcoord_sets[0]))
        return trimesh.Trimesh(
            vertices=np.array(submesh.vertices),
            faces=np.array(submesh.faces, dtype=np.int64),
            vertex_normals=np.array(submesh.normals) if submesh.vertex_count else None,
            visual=visual,
            process=False,
        )

    @staticmethod
    def trimesh_to_submesh(mesh: trimesh.Trimesh, name: str = "") -> SubMesh:
        """
        Convert a Trimesh to a SubMesh.

        Args:
            mesh: Trimesh mesh object
            name: Name for the new SubMesh

        Returns:
            MeshKit SubMesh

        Raises:
            GeometryError: If conversion fails
        """
        try:
            vertices = np.asarray(mesh.vertices, dtype=np.float64)
            texcoord_sets = []
            material = None
            visual = getattr(mesh, "visual", None)
            if visual is not None and getattr(visual, "kind", None) == "texture":
                uv = getattr(visual, "uv", None)
                if uv is not None and len(uv) == len(vertices):
                    texcoord_sets.append(np.asarray(uv, dtype=np.float64))
                material = getattr(visual, "material", None)
            normals = mesh.vertex_normals if len(mesh.faces) else np.zeros_like(vertices)
            return SubMesh(
                vertices=vertices,
                normals=np.asarray(normals, dtype=np.float64),
                indices=np.asarray(mesh.faces, dtype=np.int64).reshape(-1),
                texcoord_sets=texcoord_sets,
                name=name,
                material=material,
            )
        except Exception as e:
            raise GeometryError(f"Failed to convert Trimesh to SubMesh: {e}") from e

    @staticmethod
    def mesh_to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
        """
        Convert every submesh of *mesh* and concatenate them into one Trimesh.

        Raises:
            GeometryError: If the mesh has no geometry
        """
        parts = [GeometryConverter.submesh_to_trimesh(s) for s in mesh if s.vertex_count]
        if not parts:
            raise GeometryError(f"Mesh has no geometry: {mesh.name}")
        if len(parts) == 1:
            return parts[0]
        return trimesh.util.concatenate(parts)

    @staticmethod
    def submesh_to_compas(submesh: SubMesh) -> CompasMesh:
        """
        Convert a SubMesh to a COMPAS Mesh.

        Raises:
            GeometryError: If conversion fails
        """
        try:
            vertices = submesh.vertices.tolist()
            faces = submesh.faces.tolist()
            return CompasMesh.from_vertices_and_faces(vertices, faces)
        except Exception as e:
            raise GeometryError(f"Failed to convert SubMesh to COMPAS: {e}") from e

    @staticmethod
    def compas_to_submesh(mesh: CompasMesh, name: str = "") -> SubMesh:
        """
        Convert a COMPAS Mesh to a SubMesh.

        Polygonal faces are fan-triangulated and normals recomputed.

        Raises:
            GeometryError: If conversion fails
        """
        try:
            keys = list(mesh.vertices())
            index_of = {key: i for i, key in enumerate(keys)}
            vertices = [mesh.vertex_coordinates(key) for key in keys]
            indices: list[int] = []
            for face in mesh.faces():
                corners = [index_of[key] for key in mesh.face_vertices(face)]
                for i in range(1, len(corners) - 1):
                    indices.extend((corners[0], corners[i], corners[i + 1]))
            return SubMesh(vertices=vertices, indices=indices, name=name)
        except Exception as e:
            raise GeometryError(f"Failed to convert COMPAS to SubMesh: {e}") from e


class MeshLoader:
    """
    Loads meshes from files via trimesh.

    Scenes become one SubMesh per contained Trimesh geometry, in scene order.
    """

    SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off", ".glb", ".gltf"}

    @classmethod
    def is_valid_filename(cls, file_path: str | Path) -> bool:
        """True if the file extension is one MeshKit can load."""
        return Path(file_path).suffix.lower() in cls.SUPPORTED_FORMATS

    @classmethod
    def load(cls, file_path: str | Path, name: str | None = None, **kwargs: Any) -> Mesh:
        """
        Load a mesh from file.

        Args:
            file_path: Path to mesh file
            name: Mesh name (defaults to the path string)
            **kwargs: Additional arguments passed to trimesh.load

        Returns:
            MeshKit Mesh

        Raises:
            LoaderError: If file is missing, the format is unsupported or
                loading fails
        """
        path = Path(file_path)

        if not path.exists():
            raise LoaderError(f"File not found: {path}", path=str(path))

        if not cls.is_valid_filename(path):
            raise LoaderError(
                f"Unsupported format: {path.suffix}. "
                f"Supported formats: {sorted(cls.SUPPORTED_FORMATS)}",
                path=str(path),
            )

        try:
            loaded = trimesh.load(str(path), **kwargs)
        except Exception as e:
            raise LoaderError(f"Failed to load geometry from {path}: {e}", path=str(path)) from e

        mesh = Mesh(name=str(path) if name is None else name)
        if isinstance(loaded, trimesh.Scene):
            for geom_name, geom in loaded.geometry.items():
                if isinstance(geom, trimesh.Trimesh):
                    mesh.add_submesh(GeometryConverter.trimesh_to_submesh(geom, name=geom_name))
        elif isinstance(loaded, trimesh.Trimesh):
            mesh.add_submesh(GeometryConverter.trimesh_to_submesh(loaded, name=path.stem))
        else:
            raise LoaderError(f"Unexpected geometry type: {type(loaded)}", path=str(path))

        if mesh.submesh_count == 0:
            raise LoaderError(f"No triangle geometry in {path}", path=str(path))

        logger.info(
            "mesh_loaded",
            path=str(path),
            submeshes=mesh.submesh_count,
            vertices=mesh.vertex_count,
        )
        return mesh

    @classmethod
    def save(cls, mesh: Mesh, file_path: str | Path, **kwargs: Any) -> None:
        """
        Save a mesh to file (all submeshes concatenated).

        Args:
            mesh: MeshKit Mesh to save
            file_path: Output file path
            **kwargs: Additional arguments passed to trimesh.export

        Raises:
            LoaderError: If saving fails
        """
        path = Path(file_path)

        try:
            tmesh = GeometryConverter.mesh_to_trimesh(mesh)
            tmesh.export(str(path), **kwargs)
        except Exception as e:
            raise LoaderError(f"Failed to save geometry to {path}: {e}", path=str(path)) from e
