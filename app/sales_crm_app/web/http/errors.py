from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sales_crm_app.core.env import SALESCRM_ERROR_INCLUDE_DETAILS, get_env_bool
from sales_crm_app.core.repository_errors import SchemaBootstrapRequiredError
from sales_crm_app.infrastructure.db import DataConnectionError, DataExecutionError, DataQueryError

ERROR_CODE_SCHEMA_BOOTSTRAP_REQUIRED = "SCHEMA_BOOTSTRAP_REQUIRED"
ERROR_CODE_VALIDATION = "VALIDATION_ERROR"
ERROR_CODE_BAD_REQUEST = "BAD_REQUEST"
ERROR_CODE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_FORBIDDEN = "FORBIDDEN"
ERROR_CODE_DB_CONNECTION = "DB_CONNECTION_ERROR"
ERROR_CODE_DB_QUERY = "DB_QUERY_ERROR"
ERROR_CODE_DB_EXECUTION = "DB_EXECUTION_ERROR"
ERROR_CODE_INTERNAL = "INTERNAL_SERVER_ERROR"

_HTTP_STATUS_CODES = {
    400: ERROR_CODE_BAD_REQUEST,
    403: ERROR_CODE_FORBIDDEN,
    404: ERROR_CODE_NOT_FOUND,
    422: ERROR_CODE_VALIDATION,
}

# Storage failures all map to 503.
_STORAGE_ERRORS: tuple[tuple[type[Exception], str, str], ...] = (
    (SchemaBootstrapRequiredError, ERROR_CODE_SCHEMA_BOOTSTRAP_REQUIRED, "CRM tables are missing. Run setup/local_db/init_local_db.py and retry."),
    (DataConnectionError, ERROR_CODE_DB_CONNECTION, "Database connection is unavailable. Please try again shortly."),
    (DataQueryError, ERROR_CODE_DB_QUERY, "Failed to read CRM data."),
    (DataExecutionError, ERROR_CODE_DB_EXECUTION, "Failed to write CRM data."),
)


@dataclass(frozen=True)
class ApiErrorSpec:
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None


class ApiError(RuntimeError):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = int(status_code)
        self.code = str(code)
        self.message = str(message)
        self.details = details


def request_id_from_request(request: Request) -> str:
    request_id = str(getattr(request.state, "request_id", "") or "").strip()
    if request_id:
        return request_id
    from_header = str(request.headers.get("x-request-id", "")).strip()
    return from_header or "-"


def build_api_error_payload(
    *,
    code: str,
    message: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error": {
            "code": str(code),
            "message": str(message),
        },
        "request_id": str(request_id or "-"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details and get_env_bool(SALESCRM_ERROR_INCLUDE_DETAILS, default=False):
        payload["error"]["details"] = details
    return payload


def api_error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    request_id = request_id_from_request(request)
    payload = build_api_error_payload(
        code=code,
        message=message,
        request_id=request_id,
        details=details,
    )
    return JSONResponse(payload, status_code=int(status_code), headers={"X-Request-ID": request_id})


def normalize_exception(exc: Exception) -> ApiErrorSpec:
    """Map any exception raised under ``/api`` onto a status, code and safe message."""
    if isinstance(exc, ApiError):
        return ApiErrorSpec(exc.status_code, exc.code, exc.message, exc.details)

    if isinstance(exc, RequestValidationError):
        return ApiErrorSpec(
            status_code=422,
            code=ERROR_CODE_VALIDATION,
            message="Request validation failed. Check field values and try again.",
            details={"errors": exc.errors()},
        )

    for error_type, code, message in _STORAGE_ERRORS:
        if isinstance(exc, error_type):
            return ApiErrorSpec(503, code, message, {"reason": str(exc)})

    if isinstance(exc, ValueError):
        return ApiErrorSpec(
            status_code=400,
            code=ERROR_CODE_BAD_REQUEST,
            message=str(exc) or "Request parameters are invalid.",
            details={"reason": str(exc)},
        )

    if isinstance(exc, StarletteHTTPException):
        return ApiErrorSpec(
            status_code=int(exc.status_code),
            code=_HTTP_STATUS_CODES.get(
                int(exc.status_code),
                ERROR_CODE_BAD_REQUEST if int(exc.status_code) < 500 else ERROR_CODE_INTERNAL,
            ),
            message=str(exc.detail or "HTTP request failed."),
        )

    return ApiErrorSpec(
        status_code=500,
        code=ERROR_CODE_INTERNAL,
        message="An unexpected error occurred. Please contact support if this continues.",
        details={"reason": str(exc), "type": exc.__class__.__name__},
    )
