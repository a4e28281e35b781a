"""
Geometry module - Mesh-producing algorithms.
"""

from meshkit.geometry.decomposition import convex_decomposition
from meshkit.geometry.extrusion import extrude_polyline
from meshkit.geometry.merge import merge_submeshes
from meshkit.geometry.polygon import triangulate_polygon_with_holes
from meshkit.geometry.primitives import (
    create_box,
    create_cylinder,
    create_plane,
    create_sphere,
)

__all__ = [
    "convex_decomposition",
    "extrude_polyline",
    "merge_submeshes",
    "triangulate_polygon_with_holes",
    "create_box",
    "create_cylinder",
    "create_plane",
    "create_sphere",
]
