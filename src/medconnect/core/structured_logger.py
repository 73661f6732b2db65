"""
Structured logging utilities for application-wide logging configuration
"""

import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import LoggingSettings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            log_obj["request_id"] = request_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_obj.update(record.extra_data)

        return json.dumps(log_obj, default=str)


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Install a single stdout handler on the ``medconnect`` logger tree.

    Safe to call more than once; the handler is replaced rather than stacked.
    """
    settings = settings or LoggingSettings()
    root = logging.getLogger("medconnect")
    root.setLevel(settings.level)

    handler = logging.StreamHandler(sys.stdout)
    if settings.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
