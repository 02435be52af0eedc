"""Spreadsheet account import: read rows, build the account tree, resolve references, upsert."""

from sales_crm_app.imports.aggregation import (
    AccountDraft,
    AggregationResult,
    ContactDraft,
    ImportAggregator,
    SubAccountDraft,
    aggregate_rows,
)
from sales_crm_app.imports.apply_ops import ImportWriter
from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.contracts import ImportRunResult, ImportStore, ReferenceCandidate
from sales_crm_app.imports.matching import ReferenceResolver, find_nearest_match
from sales_crm_app.imports.parsing import ImportRow, load_import_records, read_import_rows
from sales_crm_app.imports.pipeline import preview_account_import, run_account_import
from sales_crm_app.imports.store import RepositoryImportStore

__all__ = [
    "AccountDraft",
    "AggregationResult",
    "ContactDraft",
    "ImportAggregator",
    "ImportRow",
    "ImportRunResult",
    "ImportSettings",
    "ImportStore",
    "ImportWriter",
    "ReferenceCandidate",
    "ReferenceResolver",
    "RepositoryImportStore",
    "SubAccountDraft",
    "aggregate_rows",
    "find_nearest_match",
    "load_import_records",
    "preview_account_import",
    "read_import_rows",
    "run_account_import",
]
