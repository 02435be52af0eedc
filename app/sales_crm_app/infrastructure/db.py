from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
import hashlib
import logging
from pathlib import Path
import re
import sqlite3
import time
from typing import Any, Iterable

import pandas as pd
from databricks import sql as dbsql
from databricks.sdk.core import Config as DatabricksSDKConfig
from databricks.sdk.core import oauth_service_principal

from sales_crm_app.core.config import AppConfig
from sales_crm_app.core.env import (
    SALESCRM_SLOW_QUERY_MS,
    SALESCRM_SQL_TRACE_ENABLED,
    SALESCRM_SQL_TRACE_MAX_LEN,
    get_env_bool,
    get_env_float,
    get_env_int,
)

PERF_LOGGER = logging.getLogger("sales_crm_app.perf")


class DataConnectionError(RuntimeError):
    """Raised when a database connection cannot be established."""


class DataQueryError(RuntimeError):
    """Raised when a query operation fails."""


class DataExecutionError(RuntimeError):
    """Raised when a non-query execution fails."""


class SqlClient:
    """Parameterised SQL against the local SQLite file or a Databricks SQL warehouse.

    Queries return ``pandas.DataFrame``. Each call opens and closes its own
    connection; there is no multi-statement transaction.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._sql_trace_enabled = get_env_bool(SALESCRM_SQL_TRACE_ENABLED, default=False)
        self._sql_trace_max_len = get_env_int(SALESCRM_SQL_TRACE_MAX_LEN, default=180, min_value=80)
        self._slow_query_ms = get_env_float(SALESCRM_SLOW_QUERY_MS, default=750.0, min_value=1.0)

    def _validate(self) -> None:
        if self.config.use_local_db:
            return
        missing = []
        if not self.config.databricks_server_hostname:
            missing.append("DATABRICKS_SERVER_HOSTNAME")
        if not self.config.databricks_http_path:
            missing.append("DATABRICKS_HTTP_PATH")
        if missing:
            raise DataConnectionError(f"Missing Databricks settings: {', '.join(missing)}")

    def _connect_databricks(self):
        common = {
            "server_hostname": self.config.databricks_server_hostname,
            "http_path": self.config.databricks_http_path,
        }
        token = str(self.config.databricks_token or "").strip()
        if token:
            return dbsql.connect(access_token=token, **common)

        host_url = f"https://{self.config.databricks_server_hostname}"
        client_id = str(self.config.databricks_client_id or "").strip()
        client_secret = str(self.config.databricks_client_secret or "").strip()
        if client_id and client_secret:
            cfg = DatabricksSDKConfig(host=host_url, client_id=client_id, client_secret=client_secret)
            sdk_credentials_provider = oauth_service_principal(cfg)

            # databricks-sql-connector expects credentials_provider() -> header factory.
            def _credentials_provider():
                return sdk_credentials_provider

            return dbsql.connect(credentials_provider=_credentials_provider, **common)

        runtime_cfg = DatabricksSDKConfig(host=host_url)

        def _runtime_credentials_provider():
            return runtime_cfg.authenticate

        return dbsql.connect(credentials_provider=_runtime_credentials_provider, **common)

    @contextmanager
    def _connection(self):
        if self.config.use_local_db:
            db_path = Path(self.config.local_db_path).resolve()
            if not db_path.exists():
                raise DataConnectionError(
                    f"Local DB not found: {db_path}. Run `python setup/local_db/init_local_db.py --reset` first."
                )
            try:
                conn = sqlite3.connect(str(db_path))
            except sqlite3.Error as exc:
                raise DataConnectionError(f"Failed to connect to local SQLite DB at {db_path}.") from exc
        else:
            self._validate()
            try:
                conn = self._connect_databricks()
            except Exception as exc:
                details = str(exc).strip()
                message = "Failed to connect to Databricks SQL warehouse."
                if details:
                    message = f"{message} Details: {details}"
                raise DataConnectionError(message) from exc
        try:
            yield conn
        finally:
            conn.close()

    def _prepare(self, statement: str) -> str:
        normalized = str(statement or "")
        if normalized.startswith("\ufeff"):
            normalized = normalized.lstrip("\ufeff")
        # qmark syntax is accepted by both sqlite3 and the databricks connector.
        normalized = normalized.replace("%s", "?")
        if self.config.use_local_db:
            normalized = normalized.replace(f"{self.config.fq_schema}.", "")
        return normalized

    def _prepare_params(self, params: Iterable[Any] | None) -> tuple[Any, ...]:
        if not params:
            return ()
        if not self.config.use_local_db:
            return tuple(params)
        cleaned: list[Any] = []
        for value in params:
            if isinstance(value, (datetime, date)):
                cleaned.append(value.isoformat())
            elif isinstance(value, bool):
                cleaned.append(int(value))
            else:
                cleaned.append(value)
        return tuple(cleaned)

    @staticmethod
    def _sql_preview(statement: str, max_len: int = 180) -> str:
        compact = re.sub(r"\s+", " ", str(statement or "")).strip()
        if len(compact) <= max_len:
            return compact
        return f"{compact[: max_len - 3]}..."

    def _record_query_perf(
        self,
        *,
        operation: str,
        statement: str,
        elapsed_ms: float,
        row_count: int | None = None,
        error: bool = False,
    ) -> None:
        should_log = self._sql_trace_enabled or elapsed_ms >= self._slow_query_ms or error
        if not should_log:
            return
        statement_text = str(statement or "")
        sql_hash = hashlib.sha1(statement_text.encode("utf-8", errors="ignore")).hexdigest()[:12]
        preview = self._sql_preview(statement_text, max_len=self._sql_trace_max_len)
        log_fn = PERF_LOGGER.warning if (elapsed_ms >= self._slow_query_ms or error) else PERF_LOGGER.info
        log_fn(
            "sql_perf op=%s ms=%.2f rows=%s error=%s hash=%s sql=%s",
            operation,
            float(elapsed_ms),
            "-" if row_count is None else int(row_count),
            str(bool(error)).lower(),
            sql_hash,
            preview,
            extra={
                "event": "sql_perf",
                "operation": operation,
                "elapsed_ms": round(float(elapsed_ms), 2),
                "rows": None if row_count is None else int(row_count),
                "error": bool(error),
                "sql_hash": sql_hash,
                "sql_preview": preview,
            },
        )

    @staticmethod
    def _leading_sql_keyword(statement: str) -> str:
        text = re.sub(r"/\*.*?\*/", " ", str(statement or ""), flags=re.DOTALL)
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line and not line.startswith("--")]
        normalized = " ".join(lines).lstrip("(").strip()
        if not normalized:
            return ""
        return normalized.split(None, 1)[0].upper()

    def _enforce_prod_sql_policy(self, statement: str, *, is_query: bool) -> None:
        if self.config.use_local_db:
            return
        if self.config.env != "prod" or not self.config.enforce_prod_sql_policy:
            return

        verb = self._leading_sql_keyword(statement)
        if not verb:
            raise RuntimeError("SQL statement is empty.")
        if verb in {"CREATE", "ALTER", "DROP", "TRUNCATE"}:
            raise RuntimeError(f"SQL verb '{verb}' is blocked in prod. Runtime schema changes are disabled.")
        if is_query:
            if verb not in {"SELECT", "WITH"}:
                raise RuntimeError(f"Read query verb '{verb}' is not allowed in prod query path.")
            return
        allowed = set(self.config.allowed_write_verbs)
        if verb not in allowed:
            allowed_text = ", ".join(sorted(allowed))
            raise RuntimeError(f"Write SQL verb '{verb}' is not allowed in prod. Allowed verbs: {allowed_text}.")

    def query(self, statement: str, params: Iterable[Any] | None = None) -> pd.DataFrame:
        prepared_statement = self._prepare(statement)
        prepared_params = self._prepare_params(params)
        started = time.perf_counter()
        try:
            self._enforce_prod_sql_policy(prepared_statement, is_query=True)
            with self._connection() as conn:
                cursor = conn.cursor()
                try:
                    cursor.execute(prepared_statement, prepared_params)
                    rows = cursor.fetchall()
                    cols = [desc[0] for desc in cursor.description] if cursor.description else []
                finally:
                    cursor.close()
            frame = pd.DataFrame([tuple(row) for row in rows], columns=cols)
        except DataConnectionError:
            self._record_query_perf(operation="query", statement=prepared_statement, elapsed_ms=0.0, error=True)
            raise
        except Exception as exc:
            self._record_query_perf(operation="query", statement=prepared_statement, elapsed_ms=0.0, error=True)
            raise DataQueryError("Query execution failed.") from exc
        self._record_query_perf(
            operation="query",
            statement=prepared_statement,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
            row_count=len(frame.index),
        )
        return frame

    def execute(self, statement: str, params: Iterable[Any] | None = None) -> None:
        prepared_statement = self._prepare(statement)
        prepared_params = self._prepare_params(params)
        started = time.perf_counter()
        try:
            self._enforce_prod_sql_policy(prepared_statement, is_query=False)
            with self._connection() as conn:
                cursor = conn.cursor()
                try:
                    cursor.execute(prepared_statement, prepared_params)
                finally:
                    cursor.close()
                if self.config.use_local_db:
                    conn.commit()
        except DataConnectionError:
            self._record_query_perf(operation="execute", statement=prepared_statement, elapsed_ms=0.0, error=True)
            raise
        except Exception as exc:
            self._record_query_perf(operation="execute", statement=prepared_statement, elapsed_ms=0.0, error=True)
            raise DataExecutionError("Statement execution failed.") from exc
        self._record_query_perf(
            operation="execute",
            statement=prepared_statement,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )
