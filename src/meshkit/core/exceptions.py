"""
Custom exceptions for MeshKit.

All MeshKit exceptions inherit from MeshKitError for easy catching.
"""

from typing import Any


class MeshKitError(Exception):
    """Base exception for all MeshKit errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(MeshKitError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidInputError(MeshKitError, ValueError):
    """Raised when caller-supplied geometry or parameters are malformed."""

    pass


class GeometryError(MeshKitError):
    """Raised when a geometry algorithm cannot produce a result."""

    pass


class DegenerateGeometryError(GeometryError):
    """Raised when input geometry has no area or volume to work with."""

    pass


class LoaderError(GeometryError):
    """Raised when a mesh file cannot be loaded or saved."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class MeshNotFoundError(MeshKitError, KeyError):
    """Raised when a mesh name is required but absent from the registry."""

    def __init__(self, name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Mesh not found: {name}", details)
        self.name = name

    def __str__(self) -> str:
        return MeshKitError.__str__(self)
