from __future__ import annotations

from sales_crm_app.core.repository_errors import SchemaBootstrapRequiredError
from sales_crm_app.infrastructure.db import DataConnectionError, DataQueryError

RUNTIME_REQUIRED_TABLES = (
    "states",
    "cities",
    "industries",
    "sub_industries",
    "accounts",
    "sub_accounts",
    "contacts",
)


class RepositoryCoreHealthMixin:
    def ensure_runtime_tables(self) -> None:
        if self._runtime_tables_ensured:
            return

        try:
            self.client.query("SELECT 1 AS connectivity_check")
        except (DataQueryError, DataConnectionError) as exc:
            mode = "local SQLite" if self.config.use_local_db else "Databricks"
            raise SchemaBootstrapRequiredError(
                f"{mode} connection failed before schema validation. "
                f"Configured schema: {self.config.fq_schema}. Connection error: {exc}"
            ) from exc

        missing_or_blocked: list[str] = []
        for table_name in RUNTIME_REQUIRED_TABLES:
            try:
                self.client.query(f"SELECT 1 FROM {self._table(table_name)} LIMIT 1")
            except (DataQueryError, DataConnectionError):
                missing_or_blocked.append(self._table(table_name))

        if missing_or_blocked:
            hint = (
                "Run `python setup/local_db/init_local_db.py --reset`."
                if self.config.use_local_db
                else "Apply setup/local_db/sql/schema to the configured catalog/schema."
            )
            raise SchemaBootstrapRequiredError(
                "Sales CRM schema is not initialized or access is blocked. "
                f"Missing or inaccessible: {', '.join(missing_or_blocked)}. {hint}"
            )
        self._runtime_tables_ensured = True
