"""Logging setup: level filters, JSON file logs and stderr logs."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

TRACE = 5
_OFF = logging.CRITICAL + 10
LOG_ENV_VAR = "PERCAS_LOG"
_MARK = "_percas_telemetry"

_LEVELS = {
    "off": _OFF,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}


def _level_name(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    if levelno >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"


@dataclass(frozen=True)
class FileLogsConfig:
    dir: Union[str, Path]
    filter: str = "info"
    max_files: int = 64


@dataclass(frozen=True)
class StderrLogsConfig:
    filter: str = "info"


@dataclass(frozen=True)
class LogsConfig:
    file: Optional[FileLogsConfig] = None
    stderr: Optional[StderrLogsConfig] = None

    @classmethod
    def disabled(cls) -> LogsConfig:
        return cls(file=None, stderr=None)


@dataclass(frozen=True)
class TelemetryConfig:
    logs: LogsConfig = field(default_factory=LogsConfig)


class LogFilter(logging.Filter):
    """Filter records by directives such as ``info`` or ``percas=debug,warn/regex``.

    A directive is a level, a target, or ``target=level``. The most specific
    matching target decides; with no directives only errors pass. An optional
    ``/regex`` suffix additionally requires the message to match.
    """

    def __init__(self, spec: str) -> None:
        super().__init__()
        self.spec = spec
        error = ValueError(f"failed to parse filter: {spec}")

        directives_part, sep, pattern = spec.strip().partition("/")
        if sep and "/" in pattern:
            raise error
        try:
            self.pattern = re.compile(pattern) if sep else None
        except re.error:
            raise error from None

        levels: dict[Optional[str], int] = {}
        for part in directives_part.split(","):
            part = part.strip()
            if not part:
                continue
            name, eq, level_text = part.partition("=")
            if eq:
                name = name.strip()
                level = _LEVELS.get(level_text.strip().lower())
                if not name or "=" in level_text or level is None:
                    raise error
                levels[self._normalize(name)] = level
            else:
                level = _LEVELS.get(part.lower())
                if level is None:
                    levels[self._normalize(part)] = TRACE
                else:
                    levels[None] = level
        if not levels:
            levels[None] = logging.ERROR
        self.directives = sorted(
            levels.items(), key=lambda item: len(item[0] or ""), reverse=True
        )

    @staticmethod
    def _normalize(target: str) -> str:
        return target.replace("::", ".")

    def _threshold(self, name: str) -> Optional[int]:
        for target, level in self.directives:
            if target is None or name == target or name.startswith(target + "."):
                return level
        return None

    def filter(self, record: logging.LogRecord) -> bool:
        threshold = self._threshold(record.name)
        if threshold is None or threshold >= _OFF or record.levelno < threshold:
            return False
        if self.pattern is not None:
            return self.pattern.search(record.getMessage()) is not None
        return True


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        kvs = {}
        if record.exc_info:
            kvs["exception"] = self.formatException(record.exc_info)
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": _level_name(record.levelno),
            "target": record.name,
            "file": record.pathname,
            "line": record.lineno,
            "message": record.getMessage(),
            "kvs": kvs,
        }
        return json.dumps(payload, ensure_ascii=False)


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        text = (
            f"{timestamp} {_level_name(record.levelno):>5} {record.name}: "
            f"{record.filename}:{record.lineno} {record.getMessage()}"
        )
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def make_log_filter(filter: str) -> LogFilter:
    return LogFilter(filter)


def make_log_filter_with_default_env(filter: str) -> LogFilter:
    """Like :func:`make_log_filter`, but the environment variable takes precedence."""
    from_env = os.environ.get(LOG_ENV_VAR)
    return make_log_filter(from_env if from_env is not None else filter)


def init(service_name: str, config: TelemetryConfig) -> list[logging.Handler]:
    """Install the configured log handlers on the root logger.

    Returns the installed handlers; close them to release their resources.
    Nothing is installed when a previous call already configured logging.
    """
    root = logging.getLogger()
    if any(getattr(handler, _MARK, False) for handler in root.handlers):
        return []

    logs = config.logs
    file_filter = make_log_filter(logs.file.filter) if logs.file else None
    stderr_filter = make_log_filter_with_default_env(logs.stderr.filter) if logs.stderr else None

    handlers: list[logging.Handler] = []
    if logs.file is not None:
        directory = Path(logs.file.dir)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            directory / f"{service_name}.log",
            when="H",
            backupCount=logs.file.max_files,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonFormatter())
        file_handler.addFilter(file_filter)
        handlers.append(file_handler)

    if logs.stderr is not None:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_TextFormatter())
        stderr_handler.addFilter(stderr_filter)
        handlers.append(stderr_handler)

    if handlers:
        for handler in handlers:
            setattr(handler, _MARK, True)
            root.addHandler(handler)
        root.setLevel(1)
    return handlers