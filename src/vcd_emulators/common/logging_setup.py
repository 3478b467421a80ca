import logging
import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from vcd_emulators.common.config import get_config

ROOT_LOGGER_NAME = "vcd_emulators"


class LogFormat(Enum):
    PRETTY = "pretty"
    JSON = "json"


# ANSI color codes
RESET = "\033[0m"
COLORS = {
    "DEBUG": "\033[37m",   # White
    "INFO": "\033[36m",    # Cyan
    "WARNING": "\033[33m", # Yellow
    "ERROR": "\033[31m",   # Red
    "CRITICAL": "\033[41m\033[97m",  # White on Red background
    "TIME": "\033[90m",    # Gray for timestamps
    "MODULE": "\033[35m",  # Magenta
    "CONTEXT": "\033[90m", # Gray for context fields
}

# `extra` fields the pretty formatter appends after the message, in this order
CONTEXT_FIELDS = ("error_code", "plugin_folder", "alias", "host", "config_path")

# Attributes every LogRecord carries; anything else came in through `extra`.
_STD_RECORD_KEYS = frozenset((
    "name", "args", "msg", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "taskName", "message",
))


def _utc(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class PrettyColoredFormatter(logging.Formatter):
    """
    Human-readable formatter, colored when writing to a terminal.
    Format:
    2026-10-19 14:35:12.345 UTC | ERROR    | plugin_discovery:71 | No modulePath build option [plugin_folder=subscribe]
    """

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, color_key: str, text: str) -> str:
        if not self.use_color:
            return text
        return f"{COLORS.get(color_key, '')}{text}{RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = _utc(record).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        message = record.getMessage()
        context = " ".join(
            f"{key}={getattr(record, key)}" for key in CONTEXT_FIELDS if getattr(record, key, None) is not None
        )
        if context:
            message += " " + self._paint("CONTEXT", f"[{context}]")
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return " | ".join([
            self._paint("TIME", f"{timestamp} UTC"),
            self._paint(record.levelname, f"{record.levelname:<8}"),
            self._paint("MODULE", f"{record.module}:{record.lineno}"),
            message,
        ])


class JsonFormatter(logging.Formatter):
    """One compact JSON object per record, `extra` fields merged in."""
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": _utc(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.lineno}",
            "msg": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k in _STD_RECORD_KEYS:
                continue
            try:
                json.dumps(v)
                base[k] = v
            except (TypeError, ValueError):
                base[k] = str(v)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"))


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """Attach a single stdout handler to the package root logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = level or get_config("VCD_EMULATORS_LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)

    log_format = (log_format or get_config("VCD_EMULATORS_LOG_FORMAT", LogFormat.PRETTY.value)).lower()

    if log_format == LogFormat.PRETTY.value:
        handler.setFormatter(PrettyColoredFormatter(use_color=sys.stdout.isatty()))
    elif log_format == LogFormat.JSON.value:
        handler.setFormatter(JsonFormatter())
    else:
        raise ValueError(f"Unknown log format: {log_format}")

    logger.handlers = [handler]
    logger.propagate = False
    return logger
