from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from sales_crm_app.core.util import as_bool
from sales_crm_app.imports import (
    ImportSettings,
    RepositoryImportStore,
    load_import_records,
    preview_account_import,
    run_account_import,
)
from sales_crm_app.imports.config import REFERENCE_CATEGORIES
from sales_crm_app.web.http.errors import ERROR_CODE_BAD_REQUEST, ERROR_CODE_FORBIDDEN, ApiError
from sales_crm_app.web.services import get_config, get_repo

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


async def _read_upload(form: Any) -> tuple[str, bytes]:
    upload = form.get("file")
    if upload is None or not hasattr(upload, "read"):
        raise ApiError(status_code=400, code=ERROR_CODE_BAD_REQUEST, message="Attach a spreadsheet in the 'file' field.")
    file_name = str(getattr(upload, "filename", "") or "upload.csv")
    return file_name, await upload.read()


@router.post("/imports/accounts")
async def api_import_accounts(request: Request):
    config = get_config()
    form = await request.form()
    dry_run = as_bool(form.get("dry_run"), default=False)
    if config.locked_mode and not dry_run:
        raise ApiError(
            status_code=403,
            code=ERROR_CODE_FORBIDDEN,
            message="Application is in locked mode. Imports are disabled.",
        )

    file_name, raw_bytes = await _read_upload(form)
    settings = ImportSettings.from_config(config)
    try:
        records = load_import_records(file_name, raw_bytes, max_rows=settings.max_rows)
    except ValueError as exc:
        raise ApiError(status_code=400, code=ERROR_CODE_BAD_REQUEST, message=str(exc)) from exc

    if dry_run:
        result: dict[str, Any] = preview_account_import(records, settings)
    else:
        repo = get_repo()
        await run_in_threadpool(repo.ensure_runtime_tables)
        run_result = await run_account_import(records, RepositoryImportStore(repo), settings)
        result = run_result.to_dict()
        LOGGER.info(
            "Account import request completed. file=%s rows=%s errors=%s",
            file_name,
            len(records),
            len(run_result.errors),
            extra={
                "event": "import_request_completed",
                "request_id": str(getattr(request.state, "request_id", "-")),
                "file_name": file_name,
                "row_count": len(records),
            },
        )
    return JSONResponse(
        {
            "ok": True,
            "file_name": file_name,
            "row_count": len(records),
            "dry_run": dry_run,
            "result": result,
        }
    )


@router.get("/meta/{category}")
def api_reference_rows(category: str):
    key = str(category or "").strip().lower()
    if key not in REFERENCE_CATEGORIES:
        raise ApiError(
            status_code=400,
            code=ERROR_CODE_BAD_REQUEST,
            message=f"Unknown reference category '{category}'. Expected one of: {', '.join(REFERENCE_CATEGORIES)}.",
        )
    rows = get_repo().list_reference_rows(key)
    return JSONResponse({"category": key, "items": rows})
