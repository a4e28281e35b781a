"""
MeshKit - In-memory triangle mesh management.

A thread-safe registry of named meshes plus the geometry operations that feed
it: polyline extrusion with holes, approximate convex decomposition, submesh
merging, primitive shapes and file loading through trimesh.
"""

__version__ = "0.1.0"
__author__ = "MeshKit Contributors"

from meshkit.core.mesh import Mesh, SubMesh, SubMeshHandle
from meshkit.registry import MeshRegistry, get_registry, reset_registry

__all__ = [
    "__version__",
    "Mesh",
    "SubMesh",
    "SubMeshHandle",
    "MeshRegistry",
    "get_registry",
    "reset_registry",
]
