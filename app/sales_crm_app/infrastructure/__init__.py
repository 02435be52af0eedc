"""Infrastructure adapters for storage and logging."""

from sales_crm_app.infrastructure.db import (
    DataConnectionError,
    DataExecutionError,
    DataQueryError,
    SqlClient,
)

__all__ = [
    "DataConnectionError",
    "DataExecutionError",
    "DataQueryError",
    "SqlClient",
]
