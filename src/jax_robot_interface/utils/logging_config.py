"""Structured logging for the robot interface.

Loggers are structlog loggers bound to a stdlib logger named after the
calling module. Console output is a compact single line per event; when
``ROBOT_INTERFACE_LOG_DIR`` is set, events are also written as JSON lines.
"""

from collections.abc import Mapping
from datetime import datetime
import inspect
import logging
import logging.handlers
import os
from pathlib import Path
import sys
from typing import Any

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

from jax_robot_interface.config import InterfaceConfig

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]

_CONFIGURED = False

_CONSOLE_NAME_WIDTH = 30
_CONSOLE_DROPPED_KEYS = ("func_name", "lineno", "exception", "exc_info", "_record", "_from_structlog")


def _configure_structlog() -> None:
    global _CONFIGURED

    if _CONFIGURED:
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def _compact_console_processor(logger: Any, method_name: str, event_dict: Mapping[str, Any]) -> str:
    """Format log lines as: HH:MM:SS.mmm [lvl][module                ] Event key=value ..."""
    event_dict = dict(event_dict)

    timestamp = event_dict.pop("timestamp", "")
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        dt = datetime.now()
    time_str = dt.strftime("%H:%M:%S") + f".{dt.microsecond // 1000:03d}"

    level = event_dict.pop("level", "???")[:3].lower()

    name = event_dict.pop("logger", "")
    if len(name) > _CONSOLE_NAME_WIDTH:
        name = name[-_CONSOLE_NAME_WIDTH:]

    event = event_dict.pop("event", "")
    for key in _CONSOLE_DROPPED_KEYS:
        event_dict.pop(key, None)

    line = f"{time_str} [{level}][{name:<{_CONSOLE_NAME_WIDTH}s}] {event}"
    if event_dict:
        line += " " + " ".join(f"{k}={v}" for k, v in sorted(event_dict.items()))
    return line


def _log_file_path(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return log_dir / f"robot_interface_{timestamp}_{os.getpid()}.jsonl"


def setup_logger(name: str | None = None, *, level: int | None = None) -> Any:
    """Set up a structured logger using structlog.

    Args:
        name: Logger name. Defaults to the caller's module path relative to
            the package.
        level: The logging level. Defaults to ``ROBOT_INTERFACE_LOG_LEVEL``.

    Returns:
        A configured structlog logger instance.
    """
    if name is None:
        caller = inspect.stack()[1].filename
        try:
            name = str(Path(caller).resolve().relative_to(_PACKAGE_ROOT.parent))
        except ValueError:
            name = Path(caller).stem

    _configure_structlog()
    config = InterfaceConfig()

    if level is None:
        level = logging.getLevelName(config.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    stdlib_logger = logging.getLogger(name)
    if stdlib_logger.hasHandlers():
        stdlib_logger.handlers.clear()
    stdlib_logger.setLevel(level)
    stdlib_logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=_compact_console_processor)
    )
    stdlib_logger.addHandler(console_handler)

    if config.log_dir is not None:
        file_handler = logging.handlers.RotatingFileHandler(
            _log_file_path(config.log_dir),
            mode="a",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer())
        )
        stdlib_logger.addHandler(file_handler)

    return structlog.get_logger(name)
