"""
Tests for the exception hierarchy and logging setup.
"""

import json
import logging

import numpy as np
import pytest
import structlog

from meshkit.core.exceptions import (
    ConfigurationError,
    DegenerateGeometryError,
    GeometryError,
    InvalidInputError,
    LoaderError,
    MeshKitError,
    MeshNotFoundError,
)
from meshkit.core.logging import configure_logging, get_logger, mesh_context, summarize_arrays
from meshkit.registry import MeshRegistry


class TestExceptions:
    """Tests for MeshKitError and subclasses."""

    def test_message_only(self):
        error = MeshKitError("boom")
        assert str(error) == "boom"
        assert error.details == {}

    def test_message_with_details(self):
        error = GeometryError("bad mesh", details={"vertices": 2})
        assert str(error) == "bad mesh - Details: {'vertices': 2}"
        assert error.details["vertices"] == 2

    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, InvalidInputError, GeometryError, DegenerateGeometryError],
    )
    def test_hierarchy(self, cls):
        assert issubclass(cls, MeshKitError)

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            raise InvalidInputError("bad height")

    def test_degenerate_is_geometry_error(self):
        assert issubclass(DegenerateGeometryError, GeometryError)

    def test_loader_error_path(self):
        error = LoaderError("cannot read", path="/tmp/x.stl")
        assert isinstance(error, GeometryError)
        assert error.path == "/tmp/x.stl"

    def test_mesh_not_found(self):
        error = MeshNotFoundError("bracket")
        assert isinstance(error, KeyError)
        assert error.name == "bracket"
        assert str(error) == "Mesh not found: bracket"


class TestLogging:
    """Tests for configure_logging, get_logger and mesh_context."""

    def teardown_method(self):
        structlog.reset_defaults()
        logging.basicConfig(force=True)

    def test_console_logging(self, capsys):
        configure_logging(level="INFO")
        get_logger("meshkit.test").info("mesh_added", name="console_box")
        assert "console_box" in capsys.readouterr().err

    def test_json_logging_to_file(self, temp_dir):
        log_file = temp_dir / "meshkit.log"
        configure_logging(level="DEBUG", json_output=True, log_file=str(log_file))
        get_logger("meshkit.test").debug("mesh_added", name="json_box")
        logging.shutdown()

        content = log_file.read_text()
        assert '"event": "mesh_added"' in content
        assert '"name": "json_box"' in content

    def test_level_filters_records(self, capsys):
        configure_logging(level="WARNING")
        get_logger("meshkit.test").info("hidden_event")
        assert "hidden_event" not in capsys.readouterr().err

    def test_trimesh_logger_not_below_info(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("trimesh").level == logging.INFO

    def test_arrays_are_summarized(self):
        event = summarize_arrays(
            None, "info", {"event": "buffer_seen", "vertices": np.zeros((4, 3)), "count": 4}
        )
        assert event["vertices"] == "ndarray(shape=(4, 3), dtype=float64)"
        assert event["count"] == 4

    def test_mesh_context_tags_algorithm_events(self, temp_dir):
        log_file = temp_dir / "meshkit.log"
        configure_logging(level="INFO", json_output=True, log_file=str(log_file))
        registry = MeshRegistry()
        registry.create_extruded_polyline("tagged_slab", [[(0, 0), (1, 0), (1, 1), (0, 1)]], 1.0)
        get_logger("meshkit.test").info("outside_context")
        logging.shutdown()

        records = [json.loads(line) for line in log_file.read_text().splitlines() if line]
        extruded = next(r for r in records if r["event"] == "polyline_extruded")
        assert extruded["mesh"] == "tagged_slab"
        assert extruded["operation"] == "extrude"
        outside = next(r for r in records if r["event"] == "outside_context")
        assert "mesh" not in outside

    def test_mesh_context_nests_and_unbinds(self, capsys):
        configure_logging(level="INFO")
        logger = get_logger("meshkit.test")
        with mesh_context(mesh="outer_mesh"):
            with mesh_context(operation="merge"):
                logger.info("inside_both")
        logger.info("after_both")

        lines = capsys.readouterr().err.splitlines()
        inside = next(line for line in lines if "inside_both" in line)
        after = next(line for line in lines if "after_both" in line)
        assert "outer_mesh" in inside and "merge" in inside
        assert "outer_mesh" not in after
