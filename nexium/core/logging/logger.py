"""
Nexium logging subsystem.

Purpose
-------
Single logging setup for the simulation engine and its orchestration layer:

- Structured JSON output for aggregation, colored text for local work.
- Per-command context (player, command, operation, correlation id) carried
  through ContextVars so async handlers never leak context into each other.
- Non-blocking emission via a bounded QueueHandler + QueueListener pair.

Responsibilities
----------------
- Configure the root logger exactly once (`setup_logging`).
- Enrich every record through `ContextFilter`.
- Merge `extra={...}` fields into the JSON document.
- Expose `get_logger`, `LogContext`, `set_log_context`, `clear_log_context`.

Design Notes
------------
- Console is the primary sink. A daily rotating JSON file is added only
  when `Config.LOG_TO_FILE` is set.
- When the queue is full the record is dropped and counted; the game loop
  never waits on a log sink.

Dependencies
------------
- nexium.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from nexium.core.config.config import Config


_log_context: ContextVar[Dict[str, Any]] = ContextVar("nexium_log_context", default={})

_CONTEXT_FIELDS = ("player_id", "command", "operation", "component", "correlation_id")
_NOT_SET = "-"


@dataclass(frozen=True, slots=True)
class LoggerSettings:
    """Resolved view over the static Config for the logging stack."""

    CONSOLE_FORMAT: str = (
        "%(asctime)s | %(levelname)-8s | %(name)-32s | [%(player_id)s:%(command)s] %(message)s"
    )
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    FILE_BASENAME: str = "nexium.json.log"
    FILE_BACKUP_COUNT: int = 2
    QUEUE_MAX_SIZE: int = 10_000

    @property
    def level(self) -> int:
        return getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return Config.is_production()
        return bool(Config.LOG_JSON)

    @property
    def use_colors(self) -> bool:
        return not self.use_json and Config.LOG_COLORS and sys.stdout.isatty()

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()


SETTINGS = LoggerSettings()


@dataclass(slots=True)
class QueueStats:
    enqueued: int = 0
    dropped: int = 0


_stats = QueueStats()
_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the current command context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        for field in _CONTEXT_FIELDS:
            setattr(record, field, context.get(field, _NOT_SET))
        if record.component == _NOT_SET:  # type: ignore[attr-defined]
            # nexium.modules.combat.engine -> combat
            parts = record.name.split(".")
            record.component = parts[2] if len(parts) > 2 and parts[1] == "modules" else parts[0]
        return True


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra` fields land under "extra"."""

    _RESERVED = set(
        logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
    ) | {"message", "asctime", "taskName"} | set(_CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        document: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, _NOT_SET)
            if value != _NOT_SET:
                document[field] = value

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._RESERVED and not key.startswith("_")
        }
        if extra:
            document["extra"] = extra

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        return json.dumps(document, ensure_ascii=False, default=str)


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _stats.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _stats.dropped += 1


# ============================================================================
# Setup / Teardown
# ============================================================================


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if SETTINGS.use_json:
        handler.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if SETTINGS.use_colors else logging.Formatter
        handler.setFormatter(formatter_cls(fmt=SETTINGS.CONSOLE_FORMAT, datefmt=SETTINGS.DATE_FORMAT))
    return handler


def _file_handler() -> logging.Handler:
    SETTINGS.logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(SETTINGS.logs_dir / SETTINGS.FILE_BASENAME),
        when="midnight",
        backupCount=SETTINGS.FILE_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    """Configure the root logger. Safe to call repeatedly."""
    global _listener

    root = logging.getLogger()
    if getattr(root, "_nexium_logging_initialized", False):
        return

    handlers: List[logging.Handler] = [_console_handler()]
    if Config.LOG_TO_FILE:
        handlers.append(_file_handler())

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(SETTINGS.QUEUE_MAX_SIZE)
    _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    _listener.start()

    queue_handler = _DroppingQueueHandler(log_queue)
    # filter on the handler so records from child loggers are enriched too
    queue_handler.addFilter(ContextFilter())

    root.handlers.clear()
    root.setLevel(SETTINGS.level)
    root.addHandler(queue_handler)

    for noisy in ("asyncio", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_nexium_logging_initialized", True)
    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "json": SETTINGS.use_json,
            "file": Config.LOG_TO_FILE,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue and detach every handler."""
    global _listener

    root = logging.getLogger()
    if not getattr(root, "_nexium_logging_initialized", False):
        return

    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    setattr(root, "_nexium_logging_initialized", False)


def get_queue_stats() -> Dict[str, int]:
    return {"enqueued": _stats.enqueued, "dropped": _stats.dropped}


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope log context to one command.

    Usable as both a sync and an async context manager:

        async with LogContext(player_id=42, command="explore"):
            ...
    """

    def __init__(
        self,
        player_id: Optional[int] = None,
        command: Optional[str] = None,
        operation: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        context: Dict[str, Any] = dict(_log_context.get())
        if player_id is not None:
            context["player_id"] = str(player_id)
        if command is not None:
            context["command"] = command
        if operation is not None:
            context["operation"] = operation
        if component is not None:
            context["component"] = component
        context["correlation_id"] = correlation_id or context.get("correlation_id") or uuid.uuid4().hex[:8]
        self.context = context
        self._token: Optional[Token[Dict[str, Any]]] = None

    @property
    def correlation_id(self) -> str:
        return self.context["correlation_id"]

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current context without scoping."""
    current = dict(_log_context.get())
    current.update({key: str(value) for key, value in fields.items() if value is not None})
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()
