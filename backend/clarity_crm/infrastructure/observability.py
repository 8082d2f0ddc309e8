"""Structured Logging - one JSON line per record for the API, seed script and migrations.

Invariants:
    - Every record carries timestamp, level, logger, service and message
    - Known extra fields (request, user, resource, Anthropic usage) are copied when present
    - LOG_FORMAT=json in production; "text" keeps the same extras as key=value pairs

Design Decisions:
    - setup_logging runs once from the lifespan (or the seed script's main)
    - Library loggers that echo every SQL statement or HTTP call are held at WARNING
"""

import json
import logging
from datetime import datetime, timezone

SERVICE_NAME = "clarity-crm-api"

EXTRA_FIELDS = (
    "request_id", "user_id", "resource_id", "method", "path", "status_code",
    "duration_ms", "client_ip", "error_code", "attempt", "model",
    "input_tokens", "output_tokens",
)

QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "anthropic")


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": SERVICE_NAME,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Readable single line for local development."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " | " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
