"""Profit and loss report endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from opsbook.api.files import resolve_month
from opsbook.core.auth import RequestUserContext, get_current_user_context
from opsbook.db.dependencies import get_db_session
from opsbook.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/profit-loss")
def get_profit_loss(
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).profit_loss(context=context, month=resolve_month(month))


@router.get("/profit-loss/trends")
def get_profit_loss_trends(
    month: str | None = Query(default=None),
    months: int | None = Query(default=None, ge=1),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Trailing monthly series ending with ``month``; unreadable months come back zeroed."""

    return _service(db).profit_loss_trends(context=context, anchor_month=month, months=months)
