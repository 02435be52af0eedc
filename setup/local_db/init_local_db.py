from __future__ import annotations

import argparse
import sqlite3
from pathlib import Path
from typing import Iterable


REQUIRED_SCHEMA: dict[str, tuple[str, ...]] = {
    "states": ("state_id", "state_name"),
    "cities": ("city_id", "state_id", "city_name"),
    "industries": ("industry_id", "industry_name"),
    "sub_industries": ("sub_industry_id", "industry_id", "sub_industry_name"),
    "accounts": (
        "account_id",
        "account_name",
        "account_key",
        "company_stage",
        "company_tag",
        "industries_json",
        "is_active",
    ),
    "sub_accounts": (
        "sub_account_id",
        "account_id",
        "sub_account_name",
        "sub_account_key",
        "address",
        "state_id",
        "city_id",
        "pincode",
        "office_type",
    ),
    "contacts": (
        "contact_id",
        "account_id",
        "sub_account_id",
        "contact_name",
        "contact_key",
        "phone",
        "email",
        "designation",
        "created_by",
    ),
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize a local SQLite DB with the sales CRM schema and reference data.")
    parser.add_argument(
        "--db-path",
        default=str(Path(__file__).resolve().parent / "salescrm_local.db"),
        help="Output SQLite database path.",
    )
    parser.add_argument(
        "--sql-root",
        default=str(Path(__file__).resolve().parent / "sql"),
        help="Root SQL folder path (contains schema/ and seed/).",
    )
    parser.add_argument(
        "--skip-seed",
        action="store_true",
        help="Skip loading states, union territories and base industries.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing database file before creating.",
    )
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Skip post-bootstrap schema verification.",
    )
    return parser.parse_args()


def _sql_files_from_dir(directory: Path) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"SQL directory not found: {directory}")
    files = sorted([item for item in directory.iterdir() if item.is_file() and item.suffix.lower() == ".sql"])
    if not files:
        raise FileNotFoundError(f"No SQL files found in: {directory}")
    return files


def _apply_sql_files(conn: sqlite3.Connection, files: Iterable[Path]) -> int:
    count = 0
    for sql_file in files:
        conn.executescript(sql_file.read_text(encoding="utf-8"))
        count += 1
    return count


def _table_columns(conn: sqlite3.Connection, table_name: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    return {str(row[1]).strip().lower() for row in rows if len(row) > 1 and str(row[1]).strip()}


def verify_required_schema(conn: sqlite3.Connection) -> list[str]:
    errors: list[str] = []
    for table_name, required_columns in REQUIRED_SCHEMA.items():
        present = _table_columns(conn, table_name)
        if not present:
            errors.append(f"missing table: {table_name}")
            continue
        missing = [column for column in required_columns if column.lower() not in present]
        if missing:
            errors.append(f"{table_name} missing columns: {', '.join(missing)}")
    return errors


def _row_count(conn: sqlite3.Connection, table_name: str) -> int:
    row = conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()
    return int(row[0]) if row else 0


def main() -> None:
    args = parse_args()
    db_path = Path(args.db_path).resolve()
    sql_root = Path(args.sql_root).resolve()

    schema_files = _sql_files_from_dir(sql_root / "schema")
    seed_files: list[Path] = []
    if not args.skip_seed:
        seed_files = _sql_files_from_dir(sql_root / "seed")

    if args.reset and db_path.exists():
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        schema_script_count = _apply_sql_files(conn, schema_files)
        seed_script_count = _apply_sql_files(conn, seed_files) if seed_files else 0
        conn.commit()
        if not args.skip_verify:
            schema_errors = verify_required_schema(conn)
            if schema_errors:
                details = "; ".join(schema_errors)
                raise RuntimeError(
                    "Local schema validation failed. "
                    "Run with --reset to rebuild the database. "
                    f"Details: {details}"
                )
        state_count = _row_count(conn, "states")
        industry_count = _row_count(conn, "industries")

    print(f"Local database ready: {db_path}")
    print(f"Schema scripts applied: {schema_script_count}")
    print(f"Seed scripts applied: {seed_script_count}")
    print(f"States: {state_count}")
    print(f"Industries: {industry_count}")


if __name__ == "__main__":
    main()
