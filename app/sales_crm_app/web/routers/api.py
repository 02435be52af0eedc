from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from sales_crm_app.core.repository_errors import SchemaBootstrapRequiredError
from sales_crm_app.web.services import get_config, get_repo


router = APIRouter(prefix="/api")


@router.get("/health")
def api_health():
    repo = get_repo()
    config = get_config()
    payload = {
        "ok": True,
        "mode": "local" if config.use_local_db else "databricks",
        "schema": config.fq_schema,
    }
    try:
        repo.ensure_runtime_tables()
        return JSONResponse(payload, status_code=200)
    except SchemaBootstrapRequiredError as exc:
        payload["ok"] = False
        payload["error"] = str(exc)
        return JSONResponse(payload, status_code=503)
    except Exception as exc:
        payload["ok"] = False
        payload["error"] = f"Connection check failed: {exc}"
        return JSONResponse(payload, status_code=503)
