"""
Structured diagnostic events and logging setup.

Every pipeline stage reports what it decided as a ``DiagnosticEvent``
(stage, message, data). Tests collect them with ``EventLog`` and assert on
them; production callers can pass ``NullSink`` or route them into the
standard ``logging`` tree with ``LoggingSink``.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Protocol

__all__ = [
    "DiagnosticEvent",
    "DiagnosticSink",
    "EventLog",
    "NullSink",
    "LoggingSink",
    "setup_logging",
    "reset_logging",
]

LOGGER_NAME = "abono_sheets"


@dataclass(frozen=True)
class DiagnosticEvent:
    stage: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    level: int = logging.DEBUG

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "message": self.message,
            "level": logging.getLevelName(self.level),
            "data": self.data,
        }


class DiagnosticSink(Protocol):
    def emit(self, event: DiagnosticEvent) -> None: ...


class NullSink:
    def emit(self, event: DiagnosticEvent) -> None:
        return None


class EventLog:
    """Collects events in order; optionally forwards them to another sink."""

    def __init__(self, forward: DiagnosticSink | None = None) -> None:
        self.events: list[DiagnosticEvent] = []
        self._forward = forward

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)
        if self._forward is not None:
            self._forward.emit(event)

    def for_stage(self, stage: str) -> list[DiagnosticEvent]:
        return [event for event in self.events if event.stage == stage]

    def messages(self) -> list[str]:
        return [event.message for event in self.events]


class LoggingSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def emit(self, event: DiagnosticEvent) -> None:
        self._logger.log(event.level, "[%s] %s %s", event.stage, event.message, event.data or "")


def emit(sink: DiagnosticSink | None, stage: str, message: str, level: int = logging.DEBUG, **data: Any) -> None:
    if sink is None:
        return
    sink.emit(DiagnosticEvent(stage=stage, message=message, data=data, level=level))


# ══════════════════════════════════════════════════════════════════════════════
# LOGGING SETUP
# ══════════════════════════════════════════════════════════════════════════════

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{label} {record.getMessage()}"


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Configure the package logger once; later calls only adjust the level."""
    global _configured

    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    if _configured is not None:
        _configured.setLevel(level)
        return _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured = logger
    return logger


def reset_logging() -> None:
    global _configured
    if _configured is not None:
        for handler in _configured.handlers[:]:
            _configured.removeHandler(handler)
        _configured.propagate = True
    _configured = None
