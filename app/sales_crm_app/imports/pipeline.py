from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Mapping

from sales_crm_app.imports.aggregation import AccountDraft, aggregate_rows
from sales_crm_app.imports.apply_ops import ImportWriter
from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.contracts import ImportRunResult, ImportStore
from sales_crm_app.imports.matching import ReferenceResolver
from sales_crm_app.imports.parsing import read_import_rows

LOGGER = logging.getLogger(__name__)


async def run_account_import(
    records: Iterable[Mapping[str, Any]],
    store: ImportStore,
    settings: ImportSettings | None = None,
) -> ImportRunResult:
    """Read, aggregate, resolve and upsert one spreadsheet worth of rows.

    Accounts are written one at a time in first-seen order. Running the same
    rows again only produces updates.
    """
    settings = settings or ImportSettings()
    started = time.perf_counter()
    rows = read_import_rows(records, settings)
    aggregated = aggregate_rows(rows, settings)
    result = ImportRunResult(
        rows_read=aggregated.rows_read,
        rows_skipped=aggregated.rows_skipped,
        errors=list(aggregated.errors),
    )
    LOGGER.info(
        "Account import started. rows=%s accounts=%s",
        aggregated.rows_read,
        len(aggregated.accounts),
        extra={"event": "import_started", "rows_read": aggregated.rows_read},
    )

    resolver = ReferenceResolver(store, settings)
    writer = ImportWriter(store, resolver, settings, result)
    for account in aggregated.accounts:
        await writer.write_account(account)

    for category, count in resolver.created.items():
        result.references_created[category] = result.references_created.get(category, 0) + count

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    LOGGER.info(
        "Account import finished. created=%s updated=%s errors=%s elapsed_ms=%.2f",
        result.total_created,
        result.accounts_updated + result.sub_accounts_updated + result.contacts_updated,
        len(result.errors),
        elapsed_ms,
        extra={
            "event": "import_finished",
            "total_created": result.total_created,
            "error_count": len(result.errors),
            "duration_ms": round(elapsed_ms, 2),
        },
    )
    return result


def _account_preview(account: AccountDraft) -> dict[str, Any]:
    return {
        "account_name": account.name,
        "company_stage": account.company_stage or None,
        "company_tag": account.company_tag or None,
        "industries": [
            {"industry": pair.industry, "sub_industry": pair.sub_industry or None}
            for pair in account.industries
        ],
        "source_lines": list(account.source_lines),
        "sub_accounts": [
            {
                "sub_account_name": sub_account.name,
                "address": sub_account.address or None,
                "state": sub_account.state or None,
                "city": sub_account.city or None,
                "pincode": sub_account.pincode or None,
                "office_type": sub_account.office_type or None,
                "contacts": [
                    {
                        "contact_name": contact.name,
                        "phones": list(contact.phones),
                        "email": contact.email or None,
                        "designation": contact.designation or None,
                    }
                    for contact in sub_account.contacts
                ],
            }
            for sub_account in account.sub_accounts
        ],
    }


def preview_account_import(
    records: Iterable[Mapping[str, Any]],
    settings: ImportSettings | None = None,
) -> dict[str, Any]:
    """Dry run: the aggregated tree and row counts, without touching a store."""
    settings = settings or ImportSettings()
    aggregated = aggregate_rows(read_import_rows(records, settings), settings)
    accounts = [_account_preview(account) for account in aggregated.accounts]
    return {
        "dry_run": True,
        "rows_read": aggregated.rows_read,
        "rows_skipped": aggregated.rows_skipped,
        "account_count": len(accounts),
        "sub_account_count": sum(len(item["sub_accounts"]) for item in accounts),
        "contact_count": sum(
            len(sub_account["contacts"]) for item in accounts for sub_account in item["sub_accounts"]
        ),
        "error_count": len(aggregated.errors),
        "errors": list(aggregated.errors),
        "accounts": accounts,
    }
