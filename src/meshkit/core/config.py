"""
Configuration management for MeshKit.

Settings for the geometry algorithms and logging are pydantic models that can
be loaded from a YAML file. Every field has a default, so an application that
never touches configuration still gets a working registry.

Example YAML::

    extrusion:
      tolerance: 1.0e-9
    decomposition:
      max_convex_hulls: 8
      resolution: 20000
    logging:
      level: DEBUG
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from meshkit.core.exceptions import ConfigurationError


class ExtrusionSettings(BaseModel):
    """Polyline extrusion settings."""

    tolerance: float = Field(default=1e-9, gt=0.0)


class DecompositionSettings(BaseModel):
    """Convex decomposition defaults."""

    max_convex_hulls: int = Field(default=8, ge=1)
    resolution: int = Field(default=20000, ge=1)
    concavity_threshold: float = Field(default=0.02, ge=0.0, le=1.0)
    max_split_candidates: int = Field(default=16, ge=1)


class LoggingSettings(BaseModel):
    """Logging configuration passed to ``configure_logging``."""

    level: str = "INFO"
    json_output: bool = False
    log_file: str | None = None


class MeshKitSettings(BaseModel):
    """Top-level settings model."""

    extrusion: ExtrusionSettings = Field(default_factory=ExtrusionSettings)
    decomposition: DecompositionSettings = Field(default_factory=DecompositionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(path: str | Path | None = None) -> MeshKitSettings:
    """
    Load settings from a YAML file.

    Args:
        path: Path to the YAML file. ``None`` returns the defaults.

    Returns:
        MeshKitSettings instance

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if path is None:
        return MeshKitSettings()

    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file) as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse configuration: {config_file}",
            details={"error": str(e)},
        ) from e

    if data is None:
        return MeshKitSettings()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping: {config_file}",
            details={"type": type(data).__name__},
        )

    try:
        return MeshKitSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {config_file}",
            details={"error": str(e)},
        ) from e
