"""Top-level API router."""

from fastapi import APIRouter

from opsbook.api.routes.company_expenses import router as company_expenses_router
from opsbook.api.routes.company_income import router as company_income_router
from opsbook.api.routes.dashboards import router as dashboards_router
from opsbook.api.routes.expenses import router as expenses_router
from opsbook.api.routes.exports import router as exports_router
from opsbook.api.routes.health import router as health_router
from opsbook.api.routes.me import router as me_router
from opsbook.api.routes.profiles import router as profiles_router
from opsbook.api.routes.reports import router as reports_router
from opsbook.api.routes.timesheets import router as timesheets_router
from opsbook.api.routes.vendors import router as vendors_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(profiles_router)
api_router.include_router(timesheets_router)
api_router.include_router(expenses_router)
api_router.include_router(company_income_router)
api_router.include_router(company_expenses_router)
api_router.include_router(vendors_router)
api_router.include_router(dashboards_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
