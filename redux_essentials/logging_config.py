"""
Structured logging configuration.

Emits both human-readable and JSON logs for debugging.
JSON logs include:
- Timestamp
- Level
- Subsystem
- Action type
- Store sequence number
- Latency metrics
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        subsystem = getattr(record, "subsystem", None)
        if subsystem:
            log_data["subsystem"] = subsystem
        action_type = getattr(record, "action_type", None)
        if action_type:
            log_data["action"] = action_type
        seq = getattr(record, "seq", None)
        if seq is not None:
            log_data["seq"] = seq
        latency_ms = getattr(record, "latency_ms", None)
        if latency_ms is not None:
            log_data["latency_ms"] = latency_ms
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data.update(extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable format with colors."""

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname[:4]

        prefix_parts = [f"{timestamp} {level}"]

        subsystem = getattr(record, "subsystem", None)
        if subsystem and subsystem != "general":
            prefix_parts.append(f"[{subsystem}]")
        action_type = getattr(record, "action_type", None)
        if action_type:
            prefix_parts.append(f"action={action_type}")

        prefix = " ".join(prefix_parts)
        message = record.getMessage()

        latency_ms = getattr(record, "latency_ms", None)
        if latency_ms is not None:
            message = f"{message} ({latency_ms:.1f}ms)"

        line = f"{prefix}: {message}"

        if self.use_colors and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, "")
            line = f"{color}{line}{self.RESET}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter with structured logging methods."""

    def __init__(self, logger: logging.Logger, subsystem: str = "general"):
        super().__init__(logger, {"subsystem": subsystem})

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def _log_structured(
        self,
        level: int,
        msg: str,
        subsystem: Optional[str] = None,
        action_type: Optional[str] = None,
        seq: Optional[int] = None,
        latency_ms: Optional[float] = None,
        **extra_data: Any,
    ) -> None:
        """Log with structured data."""
        fields: Dict[str, Any] = {
            "action_type": action_type,
            "seq": seq,
            "latency_ms": latency_ms,
            "extra_data": extra_data,
        }
        if subsystem:
            fields["subsystem"] = subsystem
        self.log(level, msg, extra=fields)

    def event(
        self,
        action_type: str,
        msg: str,
        **kwargs: Any,
    ) -> None:
        """Log a pipeline event."""
        self._log_structured(
            logging.INFO,
            msg,
            action_type=action_type,
            **kwargs,
        )

    def latency(
        self,
        operation: str,
        latency_ms: float,
        **kwargs: Any,
    ) -> None:
        """Log a latency measurement."""
        self._log_structured(
            logging.DEBUG,
            f"{operation} completed",
            latency_ms=latency_ms,
            **kwargs,
        )


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    json_file: Optional[str] = None,
    json_console: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        json_file: Path for JSON logs (in log_dir if relative)
        json_console: Emit JSON instead of human-readable console lines
        max_bytes: Max size per log file
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    root_logger.handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(JSONFormatter() if json_console else HumanFormatter())
    root_logger.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        human_path = os.path.join(log_dir, "redux_atm.log")
        human_handler = RotatingFileHandler(
            human_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        human_handler.setFormatter(HumanFormatter(use_colors=False))
        root_logger.addHandler(human_handler)

        json_path = json_file or os.path.join(log_dir, "redux_atm.json.log")
        if not os.path.isabs(json_path):
            json_path = os.path.join(log_dir, json_path)

        json_handler = RotatingFileHandler(
            json_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        json_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(json_handler)


def get_logger(name: str, subsystem: str = "general") -> StructuredLogger:
    """Get a structured logger."""
    return StructuredLogger(logging.getLogger(name), subsystem=subsystem)
