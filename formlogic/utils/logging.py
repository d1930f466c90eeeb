"""Structured logging utilities."""

import json
import logging
from typing import Any, Dict, Iterable, Optional

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


PACKAGE_LOGGER = "formlogic"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger with JSON formatting configured.

    Module loggers inherit their level from the package logger, so one call to
    ``configure_logging`` applies to the whole engine.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.level == logging.NOTSET:
        package_logger.setLevel(logging.INFO)
    if level:
        logger.setLevel(level.upper())
    return logger


def configure_logging(level: str = "INFO", debug: bool = False) -> logging.Logger:
    """Set the level of every engine logger at once, e.g. from EngineSettings."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel("DEBUG" if debug else level.upper())
    return package_logger


def log_catalog_load(
    logger: logging.Logger,
    source: str,
    field_count: int,
    duration_ms: float,
) -> None:
    """Log catalog load stage."""
    logger.info(
        "Catalog loaded",
        extra={
            "stage": "catalog_load",
            "source": source,
            "field_count": field_count,
            "duration_ms": duration_ms,
        },
    )


def log_graph_build(
    logger: logging.Logger,
    node_count: int,
    cycle_count: int,
    duration_ms: float,
    change_type: Optional[str] = None,
    field_id: Optional[str] = None,
) -> None:
    """Log a full graph build or an incremental patch."""
    extra: Dict[str, Any] = {
        "stage": "graph_build" if change_type is None else f"graph_{change_type}",
        "node_count": node_count,
        "cycle_count": cycle_count,
        "duration_ms": duration_ms,
    }
    if field_id:
        extra["field_id"] = field_id
    if cycle_count:
        logger.warning("Dependency graph contains cycles", extra=extra)
    else:
        logger.debug("Dependency graph updated", extra=extra)


def log_evaluation_pass(
    logger: logging.Logger,
    session_id: str,
    field_count: int,
    hidden_count: int,
    duration_ms: float,
) -> None:
    """Log a visibility re-evaluation pass."""
    logger.debug(
        "Visibility pass completed",
        extra={
            "session_id": session_id,
            "stage": "evaluate",
            "field_count": field_count,
            "hidden_count": hidden_count,
            "duration_ms": duration_ms,
        },
    )


def log_visibility_transitions(
    logger: logging.Logger,
    session_id: str,
    hidden: Iterable[str],
    shown: Iterable[str],
) -> None:
    """Log fields whose visibility flipped during a pass."""
    hidden = list(hidden)
    shown = list(shown)
    if not hidden and not shown:
        return
    logger.info(
        "Visibility changed",
        extra={
            "session_id": session_id,
            "stage": "transition",
            "hidden_fields": hidden,
            "shown_fields": shown,
        },
    )
