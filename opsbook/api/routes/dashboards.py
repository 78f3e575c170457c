"""Dashboard endpoints for staff cards, employee stats and company finances."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from opsbook.api.files import resolve_month
from opsbook.core.auth import RequestUserContext, get_current_user_context
from opsbook.db.dependencies import get_db_session
from opsbook.services.reporting_service import ReportingService

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/me")
def get_my_dashboard(
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).my_month_summary(context=context, month=resolve_month(month))


@router.get("/employees")
def get_employee_stats(
    month: str | None = Query(default=None),
    employee_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).employee_stats(context=context, month=resolve_month(month), employee_id=employee_id)


@router.get("/employees/{employee_id}/entries")
def get_employee_entries(
    employee_id: UUID,
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).employee_entries(context=context, month=resolve_month(month), employee_id=employee_id)


@router.get("/income")
def get_income_dashboard(
    month: str | None = Query(default=None),
    brand: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).income_summary(context=context, month=resolve_month(month), brand=brand)


@router.get("/expenses/{kind}")
def get_expenses_by_method(
    kind: str,
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).expenses_by_method(context=context, kind=kind, month=resolve_month(month))


@router.get("/personal-insights")
def get_personal_insights(
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).personal_expense_insights(context=context, month=resolve_month(month))


@router.get("/vendor-bills")
def get_vendor_bill_dashboard(
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).vendor_bill_summary(context=context, month=resolve_month(month))
