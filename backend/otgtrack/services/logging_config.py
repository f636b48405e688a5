"""
logging_config.py — Log output of the OTG Track service.

Covers:
  - JSON lines (default) or plain text on stdout
  - Optional rotating log file, for workshop PCs where stdout is lost
  - Request fields passed through ``extra=`` (request id, timing, HTTP)
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from typing import List, Optional

# Attributes passed through ``extra=`` that end up in the JSON line
_EXTRA_FIELDS = ("request_id", "duration_ms", "http_method", "http_path", "http_status", "client")

TEXT_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# Third-party loggers that only add noise at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "multipart")

LOG_FILE_MAX_BYTES = 2 * 1024 * 1024
LOG_FILE_BACKUPS = 3


class JSONFormatter(logging.Formatter):
    """One JSON object per line; non-ASCII (client names, É) written as is."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _formatter(json_output: bool) -> logging.Formatter:
    return JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT)


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: Optional[str] = None,
) -> List[logging.Handler]:
    """
    Route every logger to stdout and, when ``log_file`` is set, to a rotating
    file as well. Replaces the root handlers, so calling it twice is safe.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(_formatter(json_output))
    root.handlers = handlers

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handlers
