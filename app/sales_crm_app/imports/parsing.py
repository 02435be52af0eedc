from __future__ import annotations

from dataclasses import dataclass, fields
import io
import math
from pathlib import Path
import re
from typing import Any, Iterable, Mapping

import pandas as pd

from sales_crm_app.core.util import collapse_whitespace, normalize_key
from sales_crm_app.imports.config import ImportSettings

_LINE_BREAK_RE = re.compile(r"[\r\n]+")
_PHONE_SPLIT_RE = re.compile(r"[/,;|]")
_CONTACT_NAME_SPLIT_RE = re.compile(r"[/,;]")
_PINCODE_RE = re.compile(r"^\d{6}$")
_MULTI_VALUE_FIELDS = {"phone", "contact_name"}
_SUPPORTED_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


@dataclass(frozen=True)
class ImportRow:
    line_number: int
    account_name: str = ""
    company_stage: str = ""
    company_tag: str = ""
    industry: str = ""
    sub_industry: str = ""
    sub_account_name: str = ""
    office_type: str = ""
    address: str = ""
    state: str = ""
    city: str = ""
    pincode: str = ""
    contact_name: str = ""
    phone: str = ""
    designation: str = ""
    email: str = ""

    def is_blank(self) -> bool:
        return not any(
            getattr(self, item.name) for item in fields(self) if item.name != "line_number"
        )


IMPORT_ROW_FIELDS = tuple(item.name for item in fields(ImportRow) if item.name != "line_number")


def normalize_column_name(raw_name: Any) -> str:
    return normalize_key(raw_name)


def cell_text(value: Any, *, keep_lines: bool = False) -> str:
    """Render one spreadsheet cell as trimmed text.

    Integral floats lose their ``.0`` so phone numbers and pincodes keep their
    digits; ``keep_lines`` turns line breaks into ``/`` separators first.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    text = str(value)
    if keep_lines:
        text = _LINE_BREAK_RE.sub(" / ", text)
    return collapse_whitespace(text)


def _columns_by_normalized_name(record: Mapping[str, Any]) -> dict[str, list[Any]]:
    columns: dict[str, list[Any]] = {}
    for raw_name, value in record.items():
        columns.setdefault(normalize_column_name(raw_name), []).append(value)
    return columns


def _pick_field(columns: dict[str, list[Any]], aliases: Iterable[str], *, keep_lines: bool) -> str:
    for alias in aliases:
        for value in columns.get(normalize_column_name(alias), []):
            text = cell_text(value, keep_lines=keep_lines)
            if text:
                return text
    return ""


def _apply_location_corrections(values: dict[str, str], settings: ImportSettings) -> None:
    correction = settings.state_city_corrections.get(normalize_key(values.get("state")))
    if correction:
        corrected_state, corrected_city = correction
        values["state"] = corrected_state
        values["city"] = values.get("city") or corrected_city

    city = values.get("city", "")
    if city and _PINCODE_RE.match(city.replace(" ", "")):
        values["pincode"] = values.get("pincode") or city.replace(" ", "")
        values["city"] = settings.unknown_city


def normalize_import_row(record: Mapping[str, Any], settings: ImportSettings, *, line_number: int) -> ImportRow:
    columns = _columns_by_normalized_name(record)
    values: dict[str, str] = {}
    for field_name in IMPORT_ROW_FIELDS:
        aliases = settings.field_aliases.get(field_name, (field_name,))
        values[field_name] = _pick_field(columns, aliases, keep_lines=field_name in _MULTI_VALUE_FIELDS)
    _apply_location_corrections(values, settings)
    return ImportRow(line_number=line_number, **values)


def read_import_rows(records: Iterable[Mapping[str, Any]], settings: ImportSettings) -> list[ImportRow]:
    """Normalize raw spreadsheet records. Line numbers assume one header row."""
    return [
        normalize_import_row(record, settings, line_number=index + 2)
        for index, record in enumerate(records)
    ]


def split_phone_numbers(raw_value: Any) -> list[str]:
    """Split a phone cell into distinct numbers with internal whitespace removed.

    A whitespace-separated chunk is only treated as its own number when every
    chunk carries at least ten digits, so ``+91 98765 43210`` stays one number.
    """
    text = cell_text(raw_value, keep_lines=True)
    numbers: list[str] = []
    for piece in _PHONE_SPLIT_RE.split(text):
        piece = piece.strip()
        if not piece:
            continue
        chunks = piece.split()
        if len(chunks) > 1 and all(len(re.sub(r"\D", "", chunk)) >= 10 for chunk in chunks):
            candidates = chunks
        else:
            candidates = ["".join(chunks)]
        for candidate in candidates:
            if candidate and candidate not in numbers:
                numbers.append(candidate)
    return numbers


def split_contact_names(raw_value: Any) -> list[str]:
    text = cell_text(raw_value, keep_lines=True)
    names: list[str] = []
    seen: set[str] = set()
    for piece in _CONTACT_NAME_SPLIT_RE.split(text):
        name = collapse_whitespace(piece)
        key = normalize_key(name)
        if not key or key in seen:
            continue
        seen.add(key)
        names.append(name)
    return names


def canonical_choice(value: str, options: Iterable[str]) -> str | None:
    """Return the canonical spelling of ``value`` from ``options``, or ``None``."""
    key = normalize_key(value).replace("_", " ")
    if not key:
        return None
    for option in options:
        if normalize_key(option).replace("_", " ") == key:
            return option
    return None


def decode_upload_bytes(raw_bytes: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-8", "cp1252", "latin-1"):
        try:
            return raw_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError("Could not decode upload content.")


def detect_upload_format(file_name: str) -> str:
    suffix = Path(str(file_name or "")).suffix.lower()
    if suffix in _SUPPORTED_EXCEL_SUFFIXES:
        return "excel"
    if suffix == ".xls":
        raise ValueError("Legacy .xls workbooks are not supported. Save the sheet as .xlsx and retry.")
    if suffix in {".tsv", ".tab"}:
        return "tsv"
    return "csv"


def load_import_frame(file_name: str, raw_bytes: bytes) -> pd.DataFrame:
    """Load an uploaded spreadsheet as text cells; blanks stay empty strings."""
    if not raw_bytes:
        raise ValueError("Uploaded file is empty.")
    upload_format = detect_upload_format(file_name)
    try:
        if upload_format == "excel":
            frame = pd.read_excel(io.BytesIO(raw_bytes), dtype=str, keep_default_na=False)
        else:
            text = decode_upload_bytes(raw_bytes)
            frame = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                sep="\t" if upload_format == "tsv" else ",",
            )
    except ValueError:
        raise
    except Exception as exc:
        raise ValueError(f"Could not read {upload_format} upload '{file_name}': {exc}") from exc
    return frame.fillna("")


def load_import_records(file_name: str, raw_bytes: bytes, *, max_rows: int) -> list[dict[str, Any]]:
    frame = load_import_frame(file_name, raw_bytes)
    if len(frame.index) > int(max_rows):
        raise ValueError(f"Upload has {len(frame.index)} rows; the limit is {int(max_rows)}.")
    return frame.to_dict("records")
