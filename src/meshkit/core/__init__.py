"""
Core module - Mesh data model, configuration, logging and exceptions.
"""

from meshkit.core.config import MeshKitSettings, load_settings
from meshkit.core.exceptions import (
    MeshKitError,
    ConfigurationError,
    InvalidInputError,
    GeometryError,
    DegenerateGeometryError,
    LoaderError,
    MeshNotFoundError,
)
from meshkit.core.geometry import GeometryConverter, MeshLoader
from meshkit.core.mesh import BoundingBox, Mesh, SubMesh, SubMeshHandle

__all__ = [
    # Config
    "MeshKitSettings",
    "load_settings",
    # Exceptions
    "MeshKitError",
    "ConfigurationError",
    "InvalidInputError",
    "GeometryError",
    "DegenerateGeometryError",
    "LoaderError",
    "MeshNotFoundError",
    # Geometry interchange
    "GeometryConverter",
    "MeshLoader",
    # Data model
    "BoundingBox",
    "Mesh",
    "SubMesh",
    "SubMeshHandle",
]
