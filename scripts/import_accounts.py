from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
APP_ROOT = REPO_ROOT / "app"

if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.backend.repository.crm_repository import CrmRepository  # noqa: E402
from sales_crm_app.core.config import AppConfig  # noqa: E402
from sales_crm_app.imports import (  # noqa: E402
    ImportSettings,
    RepositoryImportStore,
    load_import_records,
    preview_account_import,
    run_account_import,
)
from sales_crm_app.infrastructure.logging import setup_app_logging  # noqa: E402

MAX_PRINTED_ERRORS = 20


def _threshold(value: str) -> float:
    threshold = float(value)
    if not 0.0 <= threshold <= 1.0:
        raise argparse.ArgumentTypeError("threshold must be between 0 and 1")
    return threshold


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import account spreadsheets into the CRM.")
    parser.add_argument("files", nargs="+", help="CSV, TSV or XLSX files, imported in the order given.")
    parser.add_argument("--dry-run", action="store_true", help="Aggregate and report without writing.")
    parser.add_argument("--threshold", type=_threshold, default=None, help="Similarity threshold between 0 and 1.")
    return parser.parse_args()


def _print_summary(file_name: str, summary: dict) -> None:
    errors = list(summary.get("errors") or [])
    counts = {key: value for key, value in summary.items() if key not in {"errors", "accounts"}}
    print(f"== {file_name}")
    print(json.dumps(counts, indent=2, sort_keys=True))
    for message in errors[:MAX_PRINTED_ERRORS]:
        print(f"  - {message}")
    if len(errors) > MAX_PRINTED_ERRORS:
        print(f"  ... {len(errors) - MAX_PRINTED_ERRORS} more error(s)")


async def _import_files(args: argparse.Namespace) -> int:
    config = AppConfig.from_env()
    settings = ImportSettings.from_config(config)
    if args.threshold is not None:
        settings = settings.with_overrides(match_threshold=args.threshold)

    store = None
    if not args.dry_run:
        repo = CrmRepository(config)
        repo.ensure_runtime_tables()
        store = RepositoryImportStore(repo)

    files_read = 0
    for raw_path in args.files:
        path = Path(raw_path)
        try:
            records = load_import_records(path.name, path.read_bytes(), max_rows=settings.max_rows)
        except (OSError, ValueError) as exc:
            print(f"!! {raw_path}: {exc}", file=sys.stderr)
            continue
        files_read += 1
        if args.dry_run:
            summary = preview_account_import(records, settings)
        else:
            summary = (await run_account_import(records, store, settings)).to_dict()
        _print_summary(raw_path, summary)
    return 0 if files_read else 2


def main() -> int:
    setup_app_logging()
    args = parse_args()
    return asyncio.run(_import_files(args))


if __name__ == "__main__":
    raise SystemExit(main())
