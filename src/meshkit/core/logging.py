"""
Structured logging for MeshKit.

Geometry code logs through structlog with event names and key/value context
(``logger.info("polyline_extruded", name="bracket", vertices=128)``). Two
MeshKit-specific pieces sit on top of the stock structlog setup:

- ``mesh_context`` binds the mesh being worked on (and the operation) to every
  event logged inside the block, including events from the algorithm modules
  that never see the mesh name themselves.
- numpy buffers passed as event values are rendered as a shape/dtype summary,
  so a stray ``vertices=array`` never dumps a whole vertex buffer.

Usage::

    from meshkit.core.logging import configure_logging, get_logger, mesh_context

    configure_logging(level="DEBUG")
    logger = get_logger(__name__)
    with mesh_context(mesh="bracket", operation="extrude"):
        logger.info("polyline_extruded", vertices=128)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import numpy as np
import structlog

# third-party loggers that emit geometry chatter at DEBUG
_QUIET_LOGGERS = ("trimesh",)


def summarize_arrays(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Replace numpy arrays in *event_dict* with ``ndarray(shape, dtype)`` strings."""
    for key, value in event_dict.items():
        if isinstance(value, np.ndarray):
            event_dict[key] = f"ndarray(shape={value.shape}, dtype={value.dtype})"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route MeshKit and structlog output through the stdlib root logger.

    Call once per process; the CLI does this from its global options.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit one JSON object per line instead of colored
            console lines.
        log_file: Also append records to this file.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        summarize_arrays,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


@contextmanager
def mesh_context(**context: Any) -> Iterator[None]:
    """
    Attach mesh identifiers to every event logged inside the block.

    Bindings are context-local, so concurrent registry calls on different
    threads keep their own ``mesh``/``operation`` values.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structlog logger named after the calling module (pass ``__name__``)."""
    return structlog.get_logger(name)
