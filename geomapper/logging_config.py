"""Logging setup: readable lines in development, JSON lines in production."""

import json
import logging
import os
import sys
from datetime import datetime, timezone

_RECORD_FIELDS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "taskName", "message", "asctime",
}


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, service_name: str = "geomapper"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        extra = {k: v for k, v in record.__dict__.items()
                 if k not in _RECORD_FIELDS and not k.startswith("_")}
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str, separators=(",", ":"))


class DevelopmentFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)8s | %(name)20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(level: str = "INFO", use_json: bool | None = None,
                  service_name: str = "geomapper") -> None:
    """Configure the root logger with a single stdout handler."""
    if use_json is None:
        use_json = os.environ.get("LOG_FORMAT", "").lower() == "json"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJSONFormatter(service_name) if use_json
                         else DevelopmentFormatter())
    root.addHandler(handler)

    # Werkzeug logs every request at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"log_format": "json" if use_json else "development",
               "log_level": level},
    )
