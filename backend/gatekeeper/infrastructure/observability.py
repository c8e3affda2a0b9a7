"""Structured Logging — JSON formatter and one-shot logging setup.

Invariants:
    - Every record carries timestamp, level, logger name and message
    - Verification context (member_id, scope_id, verdict, error_code, moderator_id)
      is surfaced when passed via `extra=`
    - setup_logging is idempotent: a second call replaces the handler it installed

Design Decisions:
    - stdlib logging + small JSON formatter, no logging dependency
    - "plain" format for local development, "json" everywhere else
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "member_id", "scope_id", "verdict", "state", "error_code",
    "moderator_id", "entry_id", "service",
)

_HANDLER_NAME = "gatekeeper"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure the root logger for the service."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
