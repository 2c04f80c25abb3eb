"""
Logging setup for the Flick API.

Production emits one JSON object per line so reaction and push logs can be
filtered by player_id / photo_id / recipient_id. DEBUG=true switches to a
short human-readable line. setup_logging() runs once from the lifespan.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from flick.core.config import get_settings

# Keys callers pass through logger.*(extra={...}) that survive into JSON output
EXTRA_FIELDS = (
    "player_id",
    "photo_id",
    "recipient_id",
    "kind",
    "batch_size",
    "path",
    "method",
    "status_code",
)

QUIET_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "h11",
    "h2",
    "hpack",
    "postgrest",
    "watchfiles",
)

DEV_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s] %(message)s"


class CorrelationIDFilter(logging.Filter):
    """Stamp record.correlation_id; "-" outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        from flick.core.middleware import get_correlation_id

        record.correlation_id = get_correlation_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", "-")
        if correlation_id and correlation_id != "-":
            entry["correlation_id"] = correlation_id

        entry.update(
            (field, getattr(record, field))
            for field in EXTRA_FIELDS
            if getattr(record, field, None) is not None
        )

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        # Reaction titles carry emoji; keep them readable in log search
        return json.dumps(entry, ensure_ascii=False, default=str)


def _formatter(debug: bool) -> logging.Formatter:
    if debug:
        return logging.Formatter(DEV_FORMAT, datefmt="%H:%M:%S")
    return JSONFormatter()


def setup_logging(level: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger."""
    debug = get_settings().debug
    level = level or ("DEBUG" if debug else "INFO")

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIDFilter())
    handler.setFormatter(_formatter(debug))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
