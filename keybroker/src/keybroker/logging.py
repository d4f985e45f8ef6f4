"""Structured logging setup for the key broker and its client."""
from __future__ import annotations

import logging
import sys
from typing import Dict, TextIO

import structlog

TRACE = 5
QUIET = logging.CRITICAL + 10
_DEFAULT_LEVEL = "info"

logging.addLevelName(TRACE, "TRACE")


def configure_logging(level: str | None = None, *, json: bool = True, stream: TextIO | None = None) -> None:
    """Configure structlog for the process.

    Records carry ``level``, ``ts``, ``msg`` and ``component`` keys plus any
    context supplied by the caller. The server renders JSON lines; the client
    CLI passes ``json=False`` for a console rendering on stderr.
    """

    numeric_level = _level_from_str((level or _DEFAULT_LEVEL).lower())

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        format="%(message)s",
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _component_processor,
            _rename_event_to_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(_filter_level(numeric_level)),
        cache_logger_on_first_use=False,
    )


def level_from_verbosity(verbosity: int, quiet: bool = False) -> str:
    """Map ``-v`` counts and ``-q`` onto a level name."""
    if quiet:
        return "quiet"
    names = ("warn", "info", "debug", "trace")
    return names[min(max(verbosity, 0), len(names) - 1)]


def _component_processor(
    logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Ensure every log record carries a ``component`` field."""

    component = event_dict.get("component")
    if component is None:
        logger_name = getattr(logger, "name", None) or "keybroker"
        event_dict["component"] = logger_name
    return event_dict


def _rename_event_to_msg(
    _logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    if "msg" not in event_dict:
        event_dict["msg"] = event_dict.pop("event", "")
    return event_dict


def _level_from_str(level: str) -> int:
    mapping: Dict[str, int] = {
        "quiet": QUIET,
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "trace": TRACE,
    }
    return mapping.get(level, logging.INFO)


def _filter_level(numeric_level: int) -> int:
    # structlog only builds filtering loggers for the standard levels.
    if numeric_level > logging.CRITICAL:
        return logging.CRITICAL
    if numeric_level < logging.DEBUG:
        return logging.NOTSET
    return numeric_level


__all__ = ["TRACE", "configure_logging", "level_from_verbosity"]
