import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

_LOGGING_CONFIGURED = False

STRUCTURED_FIELDS = (
    "request_id",
    "user_id",
    "campaign_id",
    "mou_id",
    "connector",
    "step",
)


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter for structured logs.

    Anything passed through ``extra=`` under one of STRUCTURED_FIELDS ends up
    as a top-level key of the emitted record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", "gayatri_backend"),
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure root logger once with JSON output.

    Safe to call multiple times – subsequent calls are no-ops.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    _LOGGING_CONFIGURED = True
