"""Studio and personal expense endpoints.

Both registers share one payload shape; ``paid_by`` only applies to personal
expenses and is ignored for studio rows.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from opsbook.api.files import resolve_month
from opsbook.core.auth import RequestUserContext, get_current_user_context
from opsbook.db.dependencies import get_db_session
from opsbook.services.ledger_service import CompanyExpenseCreateData, CompanyExpenseUpdateData, LedgerService

router = APIRouter(tags=["company-expenses"])


class CompanyExpenseCreatePayload(BaseModel):
    merchant: str = Field(min_length=1, max_length=255)
    details: str | None = Field(default=None, max_length=2000)
    amount: Decimal = Field(gt=0)
    method: str = Field(min_length=1, max_length=64)
    date: dt.date
    paid_by: str | None = Field(default=None, max_length=255)


class CompanyExpenseUpdatePayload(BaseModel):
    merchant: str | None = Field(default=None, min_length=1, max_length=255)
    details: str | None = Field(default=None, max_length=2000)
    amount: Decimal | None = Field(default=None, gt=0)
    method: str | None = Field(default=None, min_length=1, max_length=64)
    date: dt.date | None = None
    paid_by: str | None = Field(default=None, max_length=255)


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


@router.get("/{kind}-expenses")
def list_company_expenses(
    kind: str,
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target_month = resolve_month(month)
    rows = service.list_company_expenses(context=context, kind=kind, month=target_month)
    return {"month": target_month, "items": [service.serialize_company_expense(row) for row in rows]}


@router.post("/{kind}-expenses", status_code=status.HTTP_201_CREATED)
def create_company_expense(
    kind: str,
    payload: CompanyExpenseCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_company_expense(
        context=context,
        kind=kind,
        data=CompanyExpenseCreateData(
            merchant=payload.merchant,
            details=payload.details,
            amount=payload.amount,
            method=payload.method,
            date=payload.date,
            paid_by=payload.paid_by,
        ),
    )
    return service.serialize_company_expense(row)


@router.patch("/{kind}-expenses/{expense_id}")
def update_company_expense(
    kind: str,
    expense_id: UUID,
    payload: CompanyExpenseUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_company_expense(
        context=context,
        kind=kind,
        expense_id=expense_id,
        data=CompanyExpenseUpdateData(
            merchant=payload.merchant,
            details=payload.details,
            amount=payload.amount,
            method=payload.method,
            date=payload.date,
            paid_by=payload.paid_by,
        ),
    )
    return service.serialize_company_expense(row)


@router.delete("/{kind}-expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company_expense(
    kind: str,
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_company_expense(context=context, kind=kind, expense_id=expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
