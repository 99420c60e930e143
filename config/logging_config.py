"""
Logging setup for the ledger service.

Ledger events are logged as a short event name (``trade_applied``,
``ledger_conflict``...) plus structured context passed through
``extra=ledger_context(...)``. Both formatters render that context: the JSON
one as top-level keys, the text one as trailing ``key=value`` pairs.

- LOG_LEVEL from env (default INFO).
- LOG_JSON=1 switches to one JSON object per line for log shippers.
- Context carries ids (account, trade, request) and symbols, never tokens
  or emails.
"""
import json
import logging
import os
import sys
from typing import Any, Dict

# rendered in this order whenever a record carries them
LEDGER_FIELDS = (
    "request_id",
    "account_id",
    "trade_id",
    "symbol",
    "side",
    "attempt",
    "reason",
    "status",
    "duration_ms",
)


def ledger_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` dict; unknown keys are a programming error."""
    unknown = set(fields) - set(LEDGER_FIELDS)
    if unknown:
        raise ValueError(f"unknown log context fields: {sorted(unknown)}")
    return {k: v for k, v in fields.items() if v is not None}


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in LEDGER_FIELDS
        if getattr(record, name, None) is not None
    }


def _json_default(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


class JsonFormatter(logging.Formatter):
    """Single-line JSON: ts, level, logger, event, then the ledger context."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(_context_of(record))
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


class ContextTextFormatter(logging.Formatter):
    """Plain text with the ledger context appended as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        head, sep, tail = line.partition("\n")
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        return f"{head} {pairs}{sep}{tail}"


def _use_json() -> bool:
    return os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes")


def configure_logging() -> None:
    """Configure the root logger once per process (safe to call on reload)."""
    level_name = (os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if _use_json():
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ContextTextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
