# dcchain/logging_setup.py
"""
Logging setup for the dcchain command line tools.

Features:
- text or JSON lines on stderr (stdout is reserved for command output)
- RFC3339/UTC timestamps with millis in JSON records
- Redaction of PEM private key blocks and secret-like fields
- Idempotent: calling setup_logging() again replaces the previous handler
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import logging.config
import re
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "setup_logging",
    "get_logger",
    "JSONFormatter",
    "RedactionFilter",
    "SERVICE_NAME",
    "TEXT_FORMAT",
]

SERVICE_NAME = "dcchain"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# -----------------------------
# Helpers
# -----------------------------
_STD_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "asctime",
        "taskName",
        "message",
    ]
)

_SECRET_KEY_RE = re.compile(r"(?i)(password|passphrase|secret|private[_-]?key|token)")
_PEM_PRIVATE_RE = re.compile(
    r"-----BEGIN (?:[A-Z ]+ )?PRIVATE KEY-----.*?-----END (?:[A-Z ]+ )?PRIVATE KEY-----",
    re.DOTALL,
)
_SECRET_VALUE_INLINE_RE = re.compile(r"(?i)\b(password|passphrase|secret|token)\b\s*[:=]\s*([^\s'\";]+)")


def _now_rfc3339() -> str:
    dt = _dt.datetime.now(_dt.timezone.utc)
    # 2026-10-18T12:34:56.789Z
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _redact_value(v: Any) -> Any:
    if isinstance(v, bytes):
        try:
            v = v.decode("utf-8")
        except UnicodeDecodeError:
            return v
    if isinstance(v, str):
        v = _PEM_PRIVATE_RE.sub("***", v)
        return _SECRET_VALUE_INLINE_RE.sub(lambda m: f"{m.group(1)}=***", v)
    if isinstance(v, Mapping):
        return {k: ("***" if _SECRET_KEY_RE.search(str(k)) else _redact_value(val)) for k, val in v.items()}
    if isinstance(v, (list, tuple)):
        return type(v)(_redact_value(x) for x in v)
    return v


def _clean_extras(record: logging.LogRecord) -> Dict[str, Any]:
    extras = {k: v for k, v in record.__dict__.items() if k not in _STD_ATTRS}

    def _safe(obj):
        try:
            json.dumps(obj)
            return obj
        except (TypeError, ValueError):
            return repr(obj)

    return {k: _safe(v) for k, v in extras.items()}


# -----------------------------
# Filters
# -----------------------------
class RedactionFilter(logging.Filter):
    """Redact private keys and secrets in message, args and extra fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _redact_value(record.msg)
        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(_redact_value(a) for a in record.args)
            elif isinstance(record.args, Mapping):
                record.args = _redact_value(record.args)
        for k in list(record.__dict__.keys()):
            if k in _STD_ATTRS:
                continue
            if _SECRET_KEY_RE.search(k):
                record.__dict__[k] = "***"
            else:
                record.__dict__[k] = _redact_value(record.__dict__[k])
        return True


# -----------------------------
# Formatters
# -----------------------------
class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": _now_rfc3339(),
            "level": record.levelname,
            "logger": record.name,
            "service": SERVICE_NAME,
            "msg": record.getMessage(),
        }
        extras = _clean_extras(record)
        if extras:
            base["extra"] = extras
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


# -----------------------------
# Public setup
# -----------------------------
def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure root logging on stderr. Safe to call multiple times."""
    root_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = "json" if str(fmt).lower() == "json" else "text"

    config_dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "text": {"format": TEXT_FORMAT},
        },
        "filters": {
            "redact": {"()": RedactionFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": root_level,
                "formatter": formatter,
                "stream": "ext://sys.stderr",
                "filters": ["redact"],
            },
        },
        "root": {
            "level": root_level,
            "handlers": ["console"],
        },
    }
    # dictConfig drops the root handlers of a previous call
    logging.config.dictConfig(config_dict)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or SERVICE_NAME)
