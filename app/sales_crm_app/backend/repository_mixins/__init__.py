"""Repository mixin package used by ``CrmRepository``."""

from sales_crm_app.backend.repository_mixins.common.core import (
    RepositoryCoreFrameMixin,
    RepositoryCoreHealthMixin,
)
from sales_crm_app.backend.repository_mixins.domains.accounts import RepositoryAccountsMixin
from sales_crm_app.backend.repository_mixins.domains.contacts import RepositoryContactsMixin
from sales_crm_app.backend.repository_mixins.domains.reference import RepositoryReferenceMixin

__all__ = [
    "RepositoryAccountsMixin",
    "RepositoryContactsMixin",
    "RepositoryCoreFrameMixin",
    "RepositoryCoreHealthMixin",
    "RepositoryReferenceMixin",
]
