from __future__ import annotations

import io
import sys
from pathlib import Path

import pandas as pd
import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.imports.config import COMPANY_STAGE_OPTIONS, ImportSettings
from sales_crm_app.imports.parsing import (
    canonical_choice,
    cell_text,
    detect_upload_format,
    load_import_frame,
    load_import_records,
    normalize_import_row,
    read_import_rows,
    split_contact_names,
    split_phone_numbers,
)


def test_cell_text_trims_and_drops_float_suffix() -> None:
    assert cell_text("  Acme   Corp ") == "Acme Corp"
    assert cell_text(9876543210.0) == "9876543210"
    assert cell_text(float("nan")) == ""
    assert cell_text(None) == ""
    assert cell_text("a\nb", keep_lines=True) == "a / b"


def test_normalize_import_row_uses_alias_headers_case_insensitively() -> None:
    settings = ImportSettings()
    row = normalize_import_row(
        {
            " Account Name ": " Acme  Corp ",
            "INDUSTRES": "Manufacturing",
            "Sub Accounts": "Acme North",
            "Contact Name": "Ravi",
            "Contact Number": "98765 43210",
            "Desigation": "Buyer",
            "Email ID": "ravi@acme.example",
        },
        settings,
        line_number=7,
    )

    assert row.line_number == 7
    assert row.account_name == "Acme Corp"
    assert row.industry == "Manufacturing"
    assert row.sub_account_name == "Acme North"
    assert row.contact_name == "Ravi"
    assert row.phone == "98765 43210"
    assert row.designation == "Buyer"
    assert row.email == "ravi@acme.example"
    assert row.state == ""


def test_first_non_blank_alias_wins() -> None:
    row = normalize_import_row({"account": "", "company": "Globex"}, ImportSettings(), line_number=2)
    assert row.account_name == "Globex"


def test_state_cell_holding_a_city_is_corrected() -> None:
    row = normalize_import_row({"account": "Acme", "state": "chennai"}, ImportSettings(), line_number=2)
    assert row.state == "Tamil Nadu"
    assert row.city == "Chennai"

    kept_city = normalize_import_row(
        {"account": "Acme", "state": "Bangalore", "city": "Whitefield"},
        ImportSettings(),
        line_number=3,
    )
    assert kept_city.state == "Karnataka"
    assert kept_city.city == "Whitefield"


def test_city_cell_holding_a_pincode_moves_to_pincode() -> None:
    row = normalize_import_row({"account": "Acme", "city": "600 001"}, ImportSettings(), line_number=2)
    assert row.city == "Other"
    assert row.pincode == "600001"

    existing_pin = normalize_import_row(
        {"account": "Acme", "city": "600001", "pincode": "600002"},
        ImportSettings(),
        line_number=3,
    )
    assert existing_pin.pincode == "600002"


def test_read_import_rows_numbers_lines_after_header() -> None:
    rows = read_import_rows([{"account": "A"}, {"account": ""}, {"account": "B"}], ImportSettings())
    assert [row.line_number for row in rows] == [2, 3, 4]
    assert rows[1].is_blank()


def test_split_phone_numbers_handles_separators_and_spacing() -> None:
    assert split_phone_numbers("98765 43210 / 91234 56789") == ["9876543210", "9123456789"]
    assert split_phone_numbers("+91 98765 43210") == ["+919876543210"]
    assert split_phone_numbers("9876543210 9123456789") == ["9876543210", "9123456789"]
    assert split_phone_numbers("111, 222; 111 | 333\n444") == ["111", "222", "333", "444"]
    assert split_phone_numbers("") == []


def test_split_contact_names_deduplicates_case_insensitively() -> None:
    assert split_contact_names("Ravi / Priya, ravi") == ["Ravi", "Priya"]
    assert split_contact_names("  ") == []


def test_canonical_choice_matches_enumerations() -> None:
    assert canonical_choice("pan india", COMPANY_STAGE_OPTIONS) == "Pan India"
    assert canonical_choice("LATAM SouthAmerica", COMPANY_STAGE_OPTIONS) == "LATAM_SouthAmerica"
    assert canonical_choice("Galactic", COMPANY_STAGE_OPTIONS) is None


def test_detect_upload_format() -> None:
    assert detect_upload_format("accounts.xlsx") == "excel"
    assert detect_upload_format("accounts.TSV") == "tsv"
    assert detect_upload_format("accounts.txt") == "csv"
    with pytest.raises(ValueError, match="xls"):
        detect_upload_format("legacy.xls")


def test_load_import_frame_keeps_cells_as_text() -> None:
    frame = load_import_frame("accounts.csv", b"Account Name,Phone,Pincode\nAcme,09876543210,\n")
    assert list(frame.columns) == ["Account Name", "Phone", "Pincode"]
    assert frame.iloc[0]["Phone"] == "09876543210"
    assert frame.iloc[0]["Pincode"] == ""


def test_load_import_frame_reads_tsv_and_xlsx() -> None:
    tsv = load_import_frame("accounts.tsv", "account\tcity\nAcme\tPune\n".encode("utf-8"))
    assert tsv.iloc[0]["city"] == "Pune"

    buffer = io.BytesIO()
    pd.DataFrame([{"Account Name": "Acme", "Phone": "9876543210"}]).to_excel(buffer, index=False)
    workbook = load_import_frame("accounts.xlsx", buffer.getvalue())
    assert workbook.iloc[0]["Account Name"] == "Acme"
    assert workbook.iloc[0]["Phone"] == "9876543210"


def test_load_import_frame_rejects_empty_upload() -> None:
    with pytest.raises(ValueError):
        load_import_frame("accounts.csv", b"")


def test_load_import_records_enforces_row_limit() -> None:
    payload = b"account\nA\nB\nC\n"
    assert len(load_import_records("accounts.csv", payload, max_rows=3)) == 3
    with pytest.raises(ValueError, match="limit"):
        load_import_records("accounts.csv", payload, max_rows=2)
