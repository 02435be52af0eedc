from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request

from sales_crm_app.core.env import SALESCRM_REQUEST_ID_HEADER_ENABLED, get_env_bool
from sales_crm_app.infrastructure.logging import setup_app_logging
from sales_crm_app.web.http.errors import api_error_response, normalize_exception
from sales_crm_app.web.http.exception_handlers import register_exception_handlers
from sales_crm_app.web.routers import router as api_router
from sales_crm_app.web.services import get_config

LOGGER = logging.getLogger(__name__)
PERF_LOGGER = logging.getLogger("sales_crm_app.perf")


def _route_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = str(getattr(route, "path", "") or "").strip()
    return route_path or str(request.url.path or "/")


def create_app() -> FastAPI:
    setup_app_logging()
    config = get_config()
    request_id_header_enabled = get_env_bool(SALESCRM_REQUEST_ID_HEADER_ENABLED, default=True)

    app = FastAPI(title="Sales CRM")
    register_exception_handlers(app)

    @app.middleware("http")
    async def _request_id_middleware(request: Request, call_next):
        incoming = str(request.headers.get("x-request-id", "")).strip()
        request_id = incoming[:64] or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            spec = normalize_exception(exc)
            LOGGER.exception(
                "Unhandled API error. path=%s method=%s",
                request.url.path,
                request.method,
                extra={
                    "event": "unhandled_api_error",
                    "request_id": request_id,
                    "method": request.method,
                    "path": str(request.url.path),
                },
            )
            response = api_error_response(
                request,
                status_code=spec.status_code,
                code=spec.code,
                message=spec.message,
                details=spec.details,
            )
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        PERF_LOGGER.debug(
            "request_perf id=%s method=%s path=%s status=%s total_ms=%.2f",
            request_id,
            request.method,
            _route_path_label(request),
            response.status_code,
            elapsed_ms,
            extra={
                "event": "request_perf",
                "request_id": request_id,
                "status_code": int(response.status_code),
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        if request_id_header_enabled:
            response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(api_router)
    LOGGER.info(
        "Sales CRM app created. env=%s mode=%s schema=%s",
        config.env,
        "local" if config.use_local_db else "databricks",
        config.fq_schema,
        extra={"event": "app_created", "env": config.env},
    )
    return app
