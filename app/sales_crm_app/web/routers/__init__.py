from fastapi import APIRouter

from sales_crm_app.web.routers.api import router as health_router
from sales_crm_app.web.routers.imports import router as imports_router


router = APIRouter()
router.include_router(health_router)
router.include_router(imports_router)
