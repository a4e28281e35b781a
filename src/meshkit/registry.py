"""
Mesh registry — thread-safe catalog of named meshes.

The registry owns every Mesh added to it. Lookups hand out the Mesh itself
(borrowed; do not keep it past removal) and SubMesh access goes through
liveness-checked handles, which expire as soon as the registry removes or
replaces the mesh.

Geometry algorithms never run under the registry lock: results are computed
first and only the final insert is serialized.

Example:
    >>> registry = MeshRegistry()
    >>> registry.create_extruded_polyline("slab", [[(0, 0), (1, 0), (1, 1), (0, 1)]], 0.2)
    >>> registry.has_mesh("slab")
    True
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from meshkit.core.config import MeshKitSettings
from meshkit.core.exceptions import GeometryError, InvalidInputError, MeshNotFoundError
from meshkit.core.geometry import MeshLoader
from meshkit.core.logging import get_logger, mesh_context
from meshkit.core.mesh import Mesh, SubMesh
from meshkit.geometry import primitives
from meshkit.geometry.decomposition import convex_decomposition
from meshkit.geometry.extrusion import Path2D, extrude_polyline
from meshkit.geometry.merge import merge_submeshes

logger = get_logger(__name__)


class MeshRegistry:
    """
    Catalog of meshes keyed by name.

    Args:
        settings: Algorithm defaults; library defaults when omitted.
    """

    def __init__(self, settings: MeshKitSettings | None = None) -> None:
        self.settings = settings or MeshKitSettings()
        self._meshes: dict[str, Mesh] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def has_mesh(self, name: str) -> bool:
        with self._lock:
            return name in self._meshes

    def mesh_by_name(self, name: str) -> Mesh | None:
        """Borrow the mesh registered as *name*, or None."""
        with self._lock:
            return self._meshes.get(name)

    def require_mesh(self, name: str) -> Mesh:
        """
        Like ``mesh_by_name`` but raising when the name is absent.

        Raises:
            MeshNotFoundError: If no mesh is registered under *name*
        """
        mesh = self.mesh_by_name(name)
        if mesh is None:
            raise MeshNotFoundError(name, details={"available": self.mesh_names()})
        return mesh

    def mesh_names(self) -> list[str]:
        with self._lock:
            return list(self._meshes)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_mesh(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._meshes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.mesh_names())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_mesh(self, mesh: Mesh) -> None:
        """Register *mesh* under its name, replacing (and invalidating) any previous one."""
        if not isinstance(mesh, Mesh):
            raise InvalidInputError("Expected a Mesh", details={"type": type(mesh).__name__})
        with self._lock:
            previous = self._meshes.get(mesh.name)
            self._meshes[mesh.name] = mesh
        if previous is not None and previous is not mesh:
            previous.invalidate()
            logger.info("mesh_replaced", name=mesh.name)
        else:
            logger.debug("mesh_added", name=mesh.name, submeshes=mesh.submesh_count)

    def remove_mesh(self, name: str) -> bool:
        """
        Remove the mesh registered as *name*.

        Returns:
            True if a mesh was removed, False if none was registered
        """
        with self._lock:
            mesh = self._meshes.pop(name, None)
        if mesh is None:
            return False
        mesh.invalidate()
        logger.info("mesh_removed", name=name)
        return True

    def remove_all(self) -> None:
        """Remove every mesh. Safe to call on an empty registry."""
        with self._lock:
            meshes = list(self._meshes.values())
            self._meshes.clear()
        for mesh in meshes:
            mesh.invalidate()
        if meshes:
            logger.info("meshes_cleared", count=len(meshes))

    # ------------------------------------------------------------------
    # Algorithms
    # ------------------------------------------------------------------

    def create_extruded_polyline(self, name: str, path: Path2D, height: float) -> Mesh | None:
        """
        Extrude *path* to *height* and register the result as *name*.

        Nothing is registered when the extrusion fails; the failure is logged.

        Returns:
            The registered mesh, or None on failure
        """
        try:
            with mesh_context(mesh=name, operation="extrude"):
                mesh = extrude_polyline(
                    path, height, name=name, tolerance=self.settings.extrusion.tolerance
                )
        except (InvalidInputError, GeometryError) as e:
            logger.warning("extrusion_failed", name=name, error=str(e))
            return None

        self.add_mesh(mesh)
        return mesh

    def convex_decomposition(
        self,
        submesh: SubMesh,
        max_convex_hulls: Optional[int] = None,
        resolution: Optional[int] = None,
    ) -> List[SubMesh]:
        """
        Decompose *submesh* into convex hulls. The hulls are not registered.

        Parameters left as None fall back to ``settings.decomposition``.
        """
        defaults = self.settings.decomposition
        if max_convex_hulls is None:
            max_convex_hulls = defaults.max_convex_hulls
        if resolution is None:
            resolution = defaults.resolution
        with mesh_context(submesh=submesh.name, operation="decompose"):
            return convex_decomposition(
                submesh,
                max_convex_hulls=max_convex_hulls,
                resolution=resolution,
                concavity_threshold=defaults.concavity_threshold,
                max_split_candidates=defaults.max_split_candidates,
            )

    def merge_submeshes(self, mesh: Mesh) -> Mesh:
        """Merge the submeshes of *mesh* under a name unused in this registry. Not registered."""
        with mesh_context(mesh=mesh.name, operation="merge"):
            return merge_submeshes(mesh, existing_names=self.mesh_names())

    # ------------------------------------------------------------------
    # External sources
    # ------------------------------------------------------------------

    def is_valid_filename(self, file_path: str | Path) -> bool:
        return MeshLoader.is_valid_filename(file_path)

    def load(self, file_path: str | Path) -> Mesh | None:
        """
        Load a mesh file and register it under its path string.

        A path that is already registered is returned without reloading.

        Returns:
            The registered mesh, or None if loading failed
        """
        key = str(file_path)
        existing = self.mesh_by_name(key)
        if existing is not None:
            return existing

        try:
            with mesh_context(mesh=key, operation="load"):
                mesh = MeshLoader.load(file_path, name=key)
        except GeometryError as e:
            logger.warning("mesh_load_failed", path=key, error=str(e))
            return None

        with self._lock:
            # another caller may have loaded the same file meanwhile
            existing = self._meshes.get(key)
            if existing is not None:
                return existing
            self._meshes[key] = mesh
        return mesh

    def create_box(
        self,
        name: str,
        size: Sequence[float] = (1.0, 1.0, 1.0),
        uv_coords: Sequence[float] = (1.0, 1.0),
    ) -> Mesh:
        return self._create_primitive(name, primitives.create_box, size=size, uv_coords=uv_coords)

    def create_sphere(
        self, name: str, radius: float = 1.0, rings: int = 16, segments: int = 32
    ) -> Mesh:
        return self._create_primitive(
            name, primitives.create_sphere, radius=radius, rings=rings, segments=segments
        )

    def create_cylinder(
        self, name: str, radius: float = 1.0, height: float = 1.0, segments: int = 32
    ) -> Mesh:
        return self._create_primitive(
            name, primitives.create_cylinder, radius=radius, height=height, segments=segments
        )

    def create_plane(
        self,
        name: str,
        size: Sequence[float] = (1.0, 1.0),
        segments: Sequence[int] = (1, 1),
        uv_tile: Sequence[float] = (1.0, 1.0),
    ) -> Mesh:
        return self._create_primitive(
            name, primitives.create_plane, size=size, segments=segments, uv_tile=uv_tile
        )

    def _create_primitive(self, name: str, factory, **kwargs) -> Mesh:
        """Build a primitive unless *name* exists already; existing meshes win."""
        existing = self.mesh_by_name(name)
        if existing is not None:
            return existing
        mesh = factory(name, **kwargs)
        with self._lock:
            existing = self._meshes.get(name)
            if existing is not None:
                return existing
            self._meshes[name] = mesh
        return mesh


_default_registry: MeshRegistry | None = None
_default_lock = threading.Lock()


def get_registry() -> MeshRegistry:
    """Process-wide registry, created on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = MeshRegistry()
        return _default_registry


def reset_registry() -> None:
    """Empty and drop the process-wide registry."""
    global _default_registry
    with _default_lock:
        registry, _default_registry = _default_registry, None
    if registry is not None:
        registry.remove_all()
