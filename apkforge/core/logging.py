"""
Logging for apkforge.

structlog renders the application's own events. The standard library root
logger goes through rich, so Prefect's run logs share the same terminal.
Toolchain events carry many filesystem paths; those are rendered as plain
strings so JSON output stays readable in CI logs.
"""

from __future__ import annotations

import logging
import sys
from pathlib import PurePath
from typing import TYPE_CHECKING, Any, ContextManager, TextIO

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Config

# Client libraries Prefect pulls in; their per-request chatter drowns build output.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn", "prefect.server")


def _stringify_paths(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = str(value)
    return event_dict


def _wants_json(log_format: str, stream: TextIO) -> bool:
    if log_format != "auto":
        return log_format == "json"
    isatty = getattr(stream, "isatty", None)
    return not (isatty is not None and isatty())


def setup_logging(config: Config | None = None, stream: TextIO | None = None) -> None:
    """Configure logging for a CLI command or a programmatic build.

    Safe to call more than once; the latest call wins.

    Args:
        config: Supplies the level and output format. INFO with an auto-detected
            format when None.
        stream: Where events are written. Standard error when None.
    """
    log_level = config.log_level if config else "INFO"
    log_format = config.log_format if config else "auto"
    level = getattr(logging, log_level, logging.INFO)
    stream = stream or sys.stderr

    handler = RichHandler(
        console=Console(file=stream),
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=log_level == "DEBUG",
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        _stringify_paths,
    ]
    if _wants_json(log_format, stream):
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        # Module-level loggers must follow a later reconfiguration.
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured bound logger
    """
    return structlog.get_logger(name)


def log_context(**kwargs: object) -> ContextManager[None]:
    """Tag every event logged inside the ``with`` block, e.g. with the run id or step."""
    return structlog.contextvars.bound_contextvars(**kwargs)
