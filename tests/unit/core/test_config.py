"""
Unit tests for configuration management.
"""

import pytest
from pydantic import ValidationError

from meshkit.core.config import (
    DecompositionSettings,
    ExtrusionSettings,
    LoggingSettings,
    MeshKitSettings,
    load_settings,
)
from meshkit.core.exceptions import ConfigurationError


class TestSettingsModels:
    """Tests for the settings models."""

    def test_defaults(self):
        settings = MeshKitSettings()
        assert settings.extrusion.tolerance == 1e-9
        assert settings.decomposition.max_convex_hulls == 8
        assert settings.decomposition.resolution == 20000
        assert settings.decomposition.concavity_threshold == 0.02
        assert settings.decomposition.max_split_candidates == 16
        assert settings.logging.level == "INFO"
        assert settings.logging.json_output is False
        assert settings.logging.log_file is None

    def test_decomposition_limits(self):
        with pytest.raises(ValidationError):
            DecompositionSettings(max_convex_hulls=0)
        with pytest.raises(ValidationError):
            DecompositionSettings(resolution=0)
        with pytest.raises(ValidationError):
            DecompositionSettings(concavity_threshold=1.5)

    def test_tolerance_must_be_positive(self):
        with pytest.raises(ValidationError):
            ExtrusionSettings(tolerance=0.0)

    def test_logging_settings(self):
        settings = LoggingSettings(level="DEBUG", json_output=True, log_file="meshkit.log")
        assert settings.level == "DEBUG"
        assert settings.json_output is True


class TestLoadSettings:
    """Tests for load_settings."""

    def test_none_returns_defaults(self):
        assert load_settings(None) == MeshKitSettings()

    def test_load_yaml(self, temp_dir):
        config_file = temp_dir / "meshkit.yaml"
        config_file.write_text(
            """
extrusion:
  tolerance: 1.0e-6
decomposition:
  max_convex_hulls: 4
  resolution: 5000
logging:
  level: DEBUG
"""
        )
        settings = load_settings(config_file)
        assert settings.extrusion.tolerance == 1e-6
        assert settings.decomposition.max_convex_hulls == 4
        assert settings.decomposition.resolution == 5000
        assert settings.decomposition.concavity_threshold == 0.02
        assert settings.logging.level == "DEBUG"

    def test_empty_file_returns_defaults(self, temp_dir):
        config_file = temp_dir / "empty.yaml"
        config_file.write_text("")
        assert load_settings(config_file) == MeshKitSettings()

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(temp_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_dir):
        config_file = temp_dir / "broken.yaml"
        config_file.write_text("decomposition: [unclosed")
        with pytest.raises(ConfigurationError, match="parse"):
            load_settings(config_file)

    def test_non_mapping(self, temp_dir):
        config_file = temp_dir / "list.yaml"
        config_file.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(config_file)

    def test_invalid_values(self, temp_dir):
        config_file = temp_dir / "invalid.yaml"
        config_file.write_text("decomposition:\n  max_convex_hulls: 0\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration") as exc_info:
            load_settings(config_file)
        assert "error" in exc_info.value.details
