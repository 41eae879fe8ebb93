"""
Logging setup for the lock inspector.

Log output goes to stderr so `lock-inspector snapshot --json` keeps stdout
clean for the snapshot document. `LOG_JSON=true` switches to one JSON object
per line, with every `extra=` field (lock counts, wait source, collection
timings) promoted to a top-level key.

    configure_logging(level="DEBUG", json_logs=True)
    log = get_logger(__name__)
    log.info("[COLLECT] snapshot read", extra={"locks": 12})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else was passed via `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _json_formatter(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    # Older call sites pass a single `extra` dict attribute.
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def build_logging_config(level: str = "INFO", json_logs: bool = False) -> Dict[str, Any]:
    """The `dictConfig` mapping used by `configure_logging`."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": CONSOLE_DATEFMT},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level.upper(),
                "stream": "ext://sys.stderr",
            }
        },
        "root": {"handlers": ["stderr"], "level": level.upper()},
    }


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Install the stderr handler on the root logger.

    Parameters
    ----------
    level : str
        Level name, e.g. "DEBUG" or "warning".
    json_logs : bool
        Emit JSON lines instead of the pipe-separated console format.
    force : bool
        When False, leave an already configured root logger alone (pytest's
        caplog, an embedding application).
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(build_logging_config(level, json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "build_logging_config", "configure_logging", "get_logger"]
