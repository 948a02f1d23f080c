"""Structured logging configuration using structlog."""

import logging
from typing import Any, Dict, Optional

import structlog
from rich.logging import RichHandler

from hirelink.config import settings


def configure_logging(level: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """Configure structured logging with rich output."""
    level_name = (level or settings.log_level).upper()
    use_console = settings.debug if debug is None else debug

    # Configure standard library logging; structlog hands its output to these handlers
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name),
        handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    )

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(colors=False) if use_console else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_transition(entity: str, entity_id: str, previous: Any, current: Any, **kwargs: Any) -> Dict[str, Any]:
    """Create a log context for a state transition."""
    return {
        "entity": entity,
        "entity_id": entity_id,
        "from_state": getattr(previous, "value", previous),
        "to_state": getattr(current, "value", current),
        **{k: v for k, v in kwargs.items() if not k.startswith("_")},
    }
