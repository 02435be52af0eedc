from __future__ import annotations

import os
from typing import Iterable

from sales_crm_app.core.util import as_bool, as_float, as_int

# Runtime mode / storage
SALESCRM_ENV = "SALESCRM_ENV"
SALESCRM_USE_LOCAL_DB = "SALESCRM_USE_LOCAL_DB"
SALESCRM_LOCAL_DB_PATH = "SALESCRM_LOCAL_DB_PATH"
SALESCRM_CATALOG = "SALESCRM_CATALOG"
SALESCRM_SCHEMA = "SALESCRM_SCHEMA"
SALESCRM_FQ_SCHEMA = "SALESCRM_FQ_SCHEMA"
SALESCRM_LOCKED_MODE = "SALESCRM_LOCKED_MODE"
SALESCRM_ENFORCE_PROD_SQL_POLICY = "SALESCRM_ENFORCE_PROD_SQL_POLICY"
SALESCRM_ALLOWED_WRITE_VERBS = "SALESCRM_ALLOWED_WRITE_VERBS"

# Logging / diagnostics
SALESCRM_LOG_LEVEL = "SALESCRM_LOG_LEVEL"
SALESCRM_LOG_JSON = "SALESCRM_LOG_JSON"
SALESCRM_SLOW_QUERY_MS = "SALESCRM_SLOW_QUERY_MS"
SALESCRM_SQL_TRACE_ENABLED = "SALESCRM_SQL_TRACE_ENABLED"
SALESCRM_SQL_TRACE_MAX_LEN = "SALESCRM_SQL_TRACE_MAX_LEN"
SALESCRM_ERROR_INCLUDE_DETAILS = "SALESCRM_ERROR_INCLUDE_DETAILS"
SALESCRM_REQUEST_ID_HEADER_ENABLED = "SALESCRM_REQUEST_ID_HEADER_ENABLED"

# Account import tuning
SALESCRM_IMPORT_MATCH_THRESHOLD = "SALESCRM_IMPORT_MATCH_THRESHOLD"
SALESCRM_IMPORT_ACTIVE_ACCOUNTS_ONLY = "SALESCRM_IMPORT_ACTIVE_ACCOUNTS_ONLY"
SALESCRM_IMPORT_DEFAULT_INDUSTRY = "SALESCRM_IMPORT_DEFAULT_INDUSTRY"
SALESCRM_IMPORT_DEFAULT_SUB_INDUSTRY = "SALESCRM_IMPORT_DEFAULT_SUB_INDUSTRY"
SALESCRM_IMPORT_MAX_ROWS = "SALESCRM_IMPORT_MAX_ROWS"
SALESCRM_IMPORT_ACTOR = "SALESCRM_IMPORT_ACTOR"

# Databricks connection
DATABRICKS_TOKEN = "DATABRICKS_TOKEN"
DATABRICKS_CLIENT_ID = "DATABRICKS_CLIENT_ID"
DATABRICKS_CLIENT_SECRET = "DATABRICKS_CLIENT_SECRET"
DATABRICKS_SERVER_HOSTNAME_KEYS = ("DATABRICKS_SERVER_HOSTNAME", "DATABRICKS_HOST")
DATABRICKS_HTTP_PATH_KEYS = ("DATABRICKS_HTTP_PATH", "DATABRICKS_SQL_HTTP_PATH")
DATABRICKS_WAREHOUSE_ID_KEYS = ("DATABRICKS_WAREHOUSE_ID", "DATABRICKS_SQL_WAREHOUSE_ID")


def get_env(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None:
        return default
    return str(value).strip()


def get_first_env(names: Iterable[str], default: str = "") -> str:
    for name in names:
        value = get_env(name)
        if value:
            return value
    return default


def get_env_bool(name: str, *, default: bool = False) -> bool:
    return as_bool(os.getenv(name), default=default)


def get_env_int(
    name: str,
    *,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    return as_int(os.getenv(name), default=default, min_value=min_value, max_value=max_value)


def get_env_float(
    name: str,
    *,
    default: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    return as_float(os.getenv(name), default=default, min_value=min_value, max_value=max_value)
