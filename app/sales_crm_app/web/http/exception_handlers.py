from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sales_crm_app.core.repository_errors import SchemaBootstrapRequiredError
from sales_crm_app.web.http.errors import ApiError, api_error_response, normalize_exception

LOGGER = logging.getLogger(__name__)


def _error_response(request: Request, exc: Exception):
    spec = normalize_exception(exc)
    log_fn = LOGGER.warning if spec.status_code < 500 else LOGGER.exception
    log_fn(
        "API request failed. code=%s status=%s path=%s method=%s",
        spec.code,
        spec.status_code,
        request.url.path,
        request.method,
        extra={
            "event": "api_error",
            "request_id": str(getattr(request.state, "request_id", "-")),
            "error_code": spec.code,
            "status_code": int(spec.status_code),
            "method": request.method,
            "path": str(request.url.path),
        },
    )
    return api_error_response(
        request,
        status_code=spec.status_code,
        code=spec.code,
        message=spec.message,
        details=spec.details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SchemaBootstrapRequiredError)
    async def _schema_bootstrap_exception_handler(request: Request, exc: SchemaBootstrapRequiredError):
        return _error_response(request, exc)

    @app.exception_handler(ApiError)
    async def _api_error_exception_handler(request: Request, exc: ApiError):
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return _error_response(request, exc)
