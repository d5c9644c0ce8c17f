"""Bulwark Logging Configuration.

Security rejections are logged with structured ``extra`` fields
(``client``, ``method``, ``path``, ``reason``) so JSON output can be
filtered without parsing messages. Credentials never reach a handler:
``RedactSecretsFilter`` masks bearer tokens and CSRF values first.
"""

import json
import logging
import re
import sys
from typing import Literal

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Extra attributes copied into structured output when present on a record
SECURITY_FIELDS = ("client", "method", "path", "reason", "limiter", "user_id")

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9_\-\.=]+")
_HEX_SECRET_RE = re.compile(r"\b[0-9a-f]{64}\b")
REDACTED = "[REDACTED]"


def redact(text: str) -> str:
    """Mask bearer tokens and 64-char hex secrets (CSRF tokens and cookies)."""
    text = _BEARER_RE.sub(rf"\g<1>{REDACTED}", text)
    return _HEX_SECRET_RE.sub(REDACTED, text)


class RedactSecretsFilter(logging.Filter):
    """Rewrites the rendered message of every record passing the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; json.dumps() escapes every field."""

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in SECURITY_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


# Third-party loggers held at WARNING unless the app runs at DEBUG
NOISY_LOGGERS = {
    "uvicorn": False,
    "uvicorn.error": False,
    "uvicorn.access": False,
    "sqlalchemy.engine": True,
}


def build_handler(format_type: Literal["structured", "dev"]) -> logging.Handler:
    """A stdout handler that never emits an unredacted secret."""
    handler = logging.StreamHandler(sys.stdout)
    formatter = (
        JSONFormatter()
        if format_type == "structured"
        else logging.Formatter(DEV_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    handler.setFormatter(formatter)
    handler.addFilter(RedactSecretsFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    format_type: Literal["structured", "dev"] = "dev",
) -> None:
    """Replace the root handlers with one redacting stdout handler.

    ``level`` is a standard level name; ``format_type`` picks JSON lines
    (``structured``) or the human-readable ``dev`` layout.
    """
    level_no = logging.getLevelName(level.upper())
    root = logging.getLogger()
    root.handlers = [build_handler(format_type)]
    root.setLevel(level_no)

    for name, follows_debug in NOISY_LOGGERS.items():
        debug = follows_debug and level_no == logging.DEBUG
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    get_logger("logging").info(f"Logging configured: level={level}, format={format_type}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``bulwark`` namespace."""
    return logging.getLogger(f"bulwark.{name}")
