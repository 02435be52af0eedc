from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.infrastructure.logging import (
    PLAIN_LOG_FORMAT,
    EventTagFormatter,
    ImportJsonFormatter,
    record_extras,
)


def _record(message: str, *args, **extra) -> logging.LogRecord:
    logger = logging.getLogger("sales_crm_app.imports.matching")
    return logger.makeRecord(logger.name, logging.INFO, __file__, 1, message, args, None, extra=extra)


def test_json_formatter_promotes_import_fields() -> None:
    record = _record(
        "Created %s reference. name=%s",
        "city",
        "Hyderabad",
        event="import_reference_created",
        category="cities",
        reference_id="city-1",
        parent_id=None,
        sql_hash="abc123",
    )

    payload = json.loads(ImportJsonFormatter().format(record))

    assert payload["message"] == "Created city reference. name=Hyderabad"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "sales_crm_app.imports.matching"
    assert payload["event"] == "import_reference_created"
    assert payload["category"] == "cities"
    assert payload["reference_id"] == "city-1"
    assert "parent_id" not in payload
    assert payload["context"] == {"sql_hash": "abc123"}


def test_json_formatter_omits_context_without_extras() -> None:
    payload = json.loads(ImportJsonFormatter().format(_record("plain message")))
    assert "context" not in payload
    assert "event" not in payload


def test_plain_formatter_appends_event_tag() -> None:
    formatter = EventTagFormatter(PLAIN_LOG_FORMAT)
    tagged = formatter.format(_record("Row 2 skipped", event="import_row_skipped", line_number=2))
    untagged = formatter.format(_record("Row 3 read"))

    assert tagged.endswith("Row 2 skipped [import_row_skipped]")
    assert untagged.endswith("Row 3 read")


def test_record_extras_skips_standard_fields() -> None:
    extras = record_extras(_record("x", event="import_started", rows_read=3))
    assert extras == {"event": "import_started", "rows_read": 3}
