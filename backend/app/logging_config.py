"""
Capacity Planner - Logging Configuration

Structured logging through structlog's stdlib integration:
- JSON lines (default) or console text, selected by LOG_FORMAT
- Context passed with ``extra={...}`` is emitted as top-level keys
- Optional file handler when LOG_FILE is set

Module code keeps using plain stdlib loggers; structlog only renders.

Usage:
    from app.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Merged jobs", extra={"department": "milling", "added": 3})
"""
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from app.core.config import settings

_configured = False

# Applied to every stdlib record before rendering
_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def build_formatter(log_format: str) -> logging.Formatter:
    """ProcessorFormatter rendering JSON, or console text for LOG_FORMAT=text"""
    if log_format.lower() == "text":
        final = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    else:
        final = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=final,
    )


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger once per process.

    Arguments default to LOG_LEVEL, LOG_FORMAT and LOG_FILE from settings.
    Calling again is a no-op.
    """
    global _configured
    if _configured:
        return

    level = level or settings.LOG_LEVEL
    formatter = build_formatter(log_format or settings.LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # SQL echo is controlled by the engine, keep the driver quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
