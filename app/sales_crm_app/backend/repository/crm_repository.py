from __future__ import annotations

from sales_crm_app.backend.repository_mixins import (
    RepositoryAccountsMixin,
    RepositoryContactsMixin,
    RepositoryCoreFrameMixin,
    RepositoryCoreHealthMixin,
    RepositoryReferenceMixin,
)
from sales_crm_app.core.config import AppConfig
from sales_crm_app.infrastructure.db import SqlClient


class CrmRepository(
    RepositoryCoreFrameMixin,
    RepositoryCoreHealthMixin,
    RepositoryReferenceMixin,
    RepositoryAccountsMixin,
    RepositoryContactsMixin,
):
    def __init__(self, config: AppConfig, client: SqlClient | None = None) -> None:
        self.config = config
        self.client = client or SqlClient(config)
        self._runtime_tables_ensured = False
