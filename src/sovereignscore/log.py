"""
Structured logging for SovereignScore.

Log lines never carry a subject's plaintext identity: callers pass
`subject_ref` (a short hash) through the `extra` mapping.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "subject_ref",
    "audit_ref",
    "decision",
    "list_version",
    "country",
    "status",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Configure the `sovereignscore` logger hierarchy.

    Replaces any handler previously installed by this function so the
    call is safe to repeat (CLI re-entry, tests).
    """
    root = logging.getLogger("sovereignscore")
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    handler.set_name("sovereignscore")

    for existing in list(root.handlers):
        if existing.get_name() == "sovereignscore":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.propagate = False
    return root
