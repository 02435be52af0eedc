from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from sales_crm_app.core.env import SALESCRM_LOG_JSON, SALESCRM_LOG_LEVEL, get_env, get_env_bool

APP_LOGGER_NAME = "sales_crm_app"
PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Import-run keys promoted to the top level of JSON lines so log queries can
# filter on them directly. Any other extra lands under "context".
IMPORT_LOG_FIELDS = (
    "event",
    "request_id",
    "category",
    "reference_id",
    "parent_id",
    "account_id",
    "sub_account_id",
    "contact_id",
    "line_number",
    "rows_read",
    "total_created",
    "error_count",
    "duration_ms",
)

_STANDARD_RECORD_FIELDS = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}

_LOGGING_CONFIGURED = False


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=`` on one record."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
    }


class ImportJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = record_extras(record)
        for key in IMPORT_LOG_FIELDS:
            if extras.get(key) is not None:
                payload[key] = extras.pop(key)
        extras = {key: value for key, value in extras.items() if value is not None}
        if extras:
            payload["context"] = extras
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


class EventTagFormatter(logging.Formatter):
    """Plain text lines with the ``event`` extra appended as ``[event]``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        event = getattr(record, "event", None)
        return f"{line} [{event}]" if event else line


def setup_app_logging() -> None:
    global _LOGGING_CONFIGURED  # pylint: disable=global-statement
    if _LOGGING_CONFIGURED:
        return

    level_name = get_env(SALESCRM_LOG_LEVEL, "INFO").upper() or "INFO"
    level = getattr(logging, level_name, logging.INFO)
    use_json = get_env_bool(SALESCRM_LOG_JSON, default=False)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ImportJsonFormatter() if use_json else EventTagFormatter(PLAIN_LOG_FORMAT))

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.addHandler(handler)
    app_logger.setLevel(level)
    app_logger.propagate = False

    logging.getLogger(__name__).info(
        "Application logging configured. level=%s json=%s",
        level_name,
        str(use_json).lower(),
        extra={"event": "logging_configured"},
    )
    _LOGGING_CONFIGURED = True
