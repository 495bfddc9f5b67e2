import logging
import json
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production and log files"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Context attached by EngineLogger
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class PrettyFormatter(logging.Formatter):
    """
    Console format with context appended.

    Wraps another formatter (the coloredlogs one in development) when given.
    """

    def __init__(self, fmt: Optional[str] = None, inner: Optional[logging.Formatter] = None):
        super().__init__(fmt)
        self._inner = inner

    def format(self, record: logging.LogRecord) -> str:
        msg = self._inner.format(record) if self._inner else super().format(record)
        context = getattr(record, "extra_data", None)
        if context:
            msg += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return msg
