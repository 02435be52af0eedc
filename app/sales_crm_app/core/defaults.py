from __future__ import annotations

# Environment and config defaults
DEFAULT_ENV_NAME = "dev"
DEFAULT_DEV_ENV_NAMES = ("dev", "development", "local")
DEFAULT_DEV_CATALOG = "sales_dev"
DEFAULT_DEV_SCHEMA = "salescrm"
DEFAULT_ALLOWED_WRITE_VERBS_CSV = "INSERT,UPDATE"
DEFAULT_ALLOWED_WRITE_VERBS = ("INSERT", "UPDATE")
DEFAULT_LOCAL_DB_PATH = "setup/local_db/salescrm_local.db"

# Account import defaults
DEFAULT_IMPORT_MATCH_THRESHOLD = 0.6
DEFAULT_IMPORT_MAX_ROWS = 20000
DEFAULT_IMPORT_ACTOR = "system"
DEFAULT_COMPANY_STAGE = "Enterprise"
DEFAULT_COMPANY_TAG = "New"
DEFAULT_OFFICE_TYPE = "Headquarter"
DEFAULT_UNKNOWN_CITY = "Other"
DEFAULT_PHONE_JOINER = " / "
