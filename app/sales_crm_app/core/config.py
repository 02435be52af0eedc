from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sales_crm_app.core.defaults import (
    DEFAULT_ALLOWED_WRITE_VERBS,
    DEFAULT_ALLOWED_WRITE_VERBS_CSV,
    DEFAULT_DEV_CATALOG,
    DEFAULT_DEV_ENV_NAMES,
    DEFAULT_DEV_SCHEMA,
    DEFAULT_ENV_NAME,
    DEFAULT_IMPORT_ACTOR,
    DEFAULT_IMPORT_MATCH_THRESHOLD,
    DEFAULT_IMPORT_MAX_ROWS,
    DEFAULT_LOCAL_DB_PATH,
)
from sales_crm_app.core.env import (
    DATABRICKS_CLIENT_ID,
    DATABRICKS_CLIENT_SECRET,
    DATABRICKS_HTTP_PATH_KEYS,
    DATABRICKS_SERVER_HOSTNAME_KEYS,
    DATABRICKS_TOKEN,
    DATABRICKS_WAREHOUSE_ID_KEYS,
    SALESCRM_ALLOWED_WRITE_VERBS,
    SALESCRM_CATALOG,
    SALESCRM_ENFORCE_PROD_SQL_POLICY,
    SALESCRM_ENV,
    SALESCRM_FQ_SCHEMA,
    SALESCRM_IMPORT_ACTIVE_ACCOUNTS_ONLY,
    SALESCRM_IMPORT_ACTOR,
    SALESCRM_IMPORT_DEFAULT_INDUSTRY,
    SALESCRM_IMPORT_DEFAULT_SUB_INDUSTRY,
    SALESCRM_IMPORT_MATCH_THRESHOLD,
    SALESCRM_IMPORT_MAX_ROWS,
    SALESCRM_LOCAL_DB_PATH,
    SALESCRM_LOCKED_MODE,
    SALESCRM_SCHEMA,
    SALESCRM_USE_LOCAL_DB,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_first_env,
)


DEV_ENV_NAMES = set(DEFAULT_DEV_ENV_NAMES)


def _clean_host(raw_host: str) -> str:
    value = str(raw_host or "").strip()
    if not value:
        return ""
    return value.replace("https://", "").replace("http://", "").rstrip("/")


def _resolve_http_path() -> str:
    direct_path = get_first_env(DATABRICKS_HTTP_PATH_KEYS)
    if direct_path:
        return direct_path
    warehouse_id = get_first_env(DATABRICKS_WAREHOUSE_ID_KEYS)
    if warehouse_id:
        return f"/sql/1.0/warehouses/{warehouse_id}"
    return ""


def _repo_root() -> Path:
    # parents[0]=core, [1]=sales_crm_app, [2]=app, [3]=repo root
    return Path(__file__).resolve().parents[3]


def _resolve_repo_relative_path(raw_path: str) -> str:
    value = str(raw_path or "").strip()
    if not value:
        return value
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str((_repo_root() / path).resolve())


def _resolve_catalog_schema(env_name: str) -> tuple[str, str]:
    fq_schema = get_env(SALESCRM_FQ_SCHEMA)
    if fq_schema:
        parts = [item.strip() for item in fq_schema.split(".", 1)]
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise RuntimeError("SALESCRM_FQ_SCHEMA must be in '<catalog>.<schema>' format.")
        return parts[0], parts[1]

    default_catalog = DEFAULT_DEV_CATALOG if env_name in DEV_ENV_NAMES else ""
    default_schema = DEFAULT_DEV_SCHEMA if env_name in DEV_ENV_NAMES else ""
    catalog = get_env(SALESCRM_CATALOG, default_catalog)
    schema = get_env(SALESCRM_SCHEMA, default_schema)

    if not catalog or not schema:
        raise RuntimeError(
            "SALESCRM_CATALOG and SALESCRM_SCHEMA are required outside local/dev mode "
            "(or set SALESCRM_FQ_SCHEMA)."
        )
    return catalog, schema


def _resolve_allowed_write_verbs() -> tuple[str, ...]:
    raw = get_env(SALESCRM_ALLOWED_WRITE_VERBS, DEFAULT_ALLOWED_WRITE_VERBS_CSV)
    values = [token.strip().upper() for token in raw.split(",") if token.strip()]
    if not values:
        values = list(DEFAULT_ALLOWED_WRITE_VERBS)
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True)
class AppConfig:
    databricks_server_hostname: str
    databricks_http_path: str
    databricks_token: str
    databricks_client_id: str = ""
    databricks_client_secret: str = ""
    env: str = DEFAULT_ENV_NAME
    catalog: str = DEFAULT_DEV_CATALOG
    schema: str = DEFAULT_DEV_SCHEMA
    use_local_db: bool = False
    local_db_path: str = DEFAULT_LOCAL_DB_PATH
    locked_mode: bool = False
    enforce_prod_sql_policy: bool = True
    allowed_write_verbs: tuple[str, ...] = DEFAULT_ALLOWED_WRITE_VERBS
    import_match_threshold: float = DEFAULT_IMPORT_MATCH_THRESHOLD
    import_active_accounts_only: bool = False
    import_default_industry: str = ""
    import_default_sub_industry: str = ""
    import_max_rows: int = DEFAULT_IMPORT_MAX_ROWS
    import_actor: str = DEFAULT_IMPORT_ACTOR

    @property
    def fq_schema(self) -> str:
        return f"{self.catalog}.{self.schema}"

    @property
    def is_dev_env(self) -> bool:
        return self.env in DEV_ENV_NAMES

    @staticmethod
    def from_env() -> "AppConfig":
        env_name = get_env(SALESCRM_ENV, DEFAULT_ENV_NAME).lower() or DEFAULT_ENV_NAME
        catalog, schema = _resolve_catalog_schema(env_name)
        default_local_db = env_name in DEV_ENV_NAMES
        requested_local_db = get_env_bool(SALESCRM_USE_LOCAL_DB, default=default_local_db)
        if requested_local_db and env_name not in DEV_ENV_NAMES:
            raise RuntimeError(
                "SALESCRM_USE_LOCAL_DB=true is allowed only for dev/local environments. "
                "Set SALESCRM_ENV=dev (or local), or disable SALESCRM_USE_LOCAL_DB."
            )
        return AppConfig(
            databricks_server_hostname=_clean_host(get_first_env(DATABRICKS_SERVER_HOSTNAME_KEYS)),
            databricks_http_path=_resolve_http_path(),
            databricks_token=get_env(DATABRICKS_TOKEN),
            databricks_client_id=get_env(DATABRICKS_CLIENT_ID),
            databricks_client_secret=get_env(DATABRICKS_CLIENT_SECRET),
            env=env_name,
            catalog=catalog,
            schema=schema,
            use_local_db=requested_local_db,
            local_db_path=_resolve_repo_relative_path(get_env(SALESCRM_LOCAL_DB_PATH, DEFAULT_LOCAL_DB_PATH)),
            locked_mode=get_env_bool(SALESCRM_LOCKED_MODE, default=False),
            enforce_prod_sql_policy=get_env_bool(SALESCRM_ENFORCE_PROD_SQL_POLICY, default=True),
            allowed_write_verbs=_resolve_allowed_write_verbs(),
            import_match_threshold=get_env_float(
                SALESCRM_IMPORT_MATCH_THRESHOLD,
                default=DEFAULT_IMPORT_MATCH_THRESHOLD,
                min_value=0.0,
                max_value=1.0,
            ),
            import_active_accounts_only=get_env_bool(SALESCRM_IMPORT_ACTIVE_ACCOUNTS_ONLY, default=False),
            import_default_industry=get_env(SALESCRM_IMPORT_DEFAULT_INDUSTRY),
            import_default_sub_industry=get_env(SALESCRM_IMPORT_DEFAULT_SUB_INDUSTRY),
            import_max_rows=get_env_int(SALESCRM_IMPORT_MAX_ROWS, default=DEFAULT_IMPORT_MAX_ROWS, min_value=1),
            import_actor=get_env(SALESCRM_IMPORT_ACTOR, DEFAULT_IMPORT_ACTOR) or DEFAULT_IMPORT_ACTOR,
        )
