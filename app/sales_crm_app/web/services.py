from __future__ import annotations

from functools import lru_cache

from sales_crm_app.backend.repository.crm_repository import CrmRepository
from sales_crm_app.core.config import AppConfig


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


@lru_cache(maxsize=1)
def get_repo() -> CrmRepository:
    return CrmRepository(get_config())
