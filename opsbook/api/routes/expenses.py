"""Employee expense endpoints, including receipt attachments."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from opsbook.api.files import attachment_response, resolve_month
from opsbook.core.auth import RequestUserContext, get_current_user_context
from opsbook.db.dependencies import get_db_session
from opsbook.services.ledger_service import ExpenseCreateData, ExpenseUpdateData, LedgerService
from opsbook.services.storage import RECEIPTS_BUCKET

router = APIRouter(prefix="/expenses", tags=["expenses"])


class ExpenseCreatePayload(BaseModel):
    date: dt.date
    description: str = Field(min_length=1, max_length=2000)
    amount: Decimal = Field(gt=0)
    user_id: UUID | None = None


class ExpenseUpdatePayload(BaseModel):
    date: dt.date | None = None
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    amount: Decimal | None = Field(default=None, gt=0)


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


@router.get("")
def list_expenses(
    month: str | None = Query(default=None),
    user_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target_month = resolve_month(month)
    rows = service.list_expenses(context=context, month=target_month, user_id=user_id)
    return {"month": target_month, "items": [service.serialize_expense(row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_expense(
        context=context,
        data=ExpenseCreateData(
            date=payload.date,
            description=payload.description,
            amount=payload.amount,
            user_id=payload.user_id,
        ),
    )
    return service.serialize_expense(row)


@router.patch("/{expense_id}")
def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_expense(
        context=context,
        expense_id=expense_id,
        data=ExpenseUpdateData(date=payload.date, description=payload.description, amount=payload.amount),
    )
    return service.serialize_expense(row)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_expense(context=context, expense_id=expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{expense_id}/receipt")
async def put_receipt(
    expense_id: UUID,
    request: Request,
    filename: str | None = Query(default=None, max_length=255),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Store the raw request body as the expense receipt, replacing any previous one."""

    service = _service(db)
    content = await request.body()
    key = service.upload_receipt(context=context, expense_id=expense_id, filename=filename, content=content)
    return {"receipt_path": key, "url": service.attachment_url(RECEIPTS_BUCKET, key)}


@router.get("/{expense_id}/receipt")
def get_receipt(
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    key, content = _service(db).download_receipt(context=context, expense_id=expense_id)
    return attachment_response(filename=key, content=content)
