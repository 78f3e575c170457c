"""Company income endpoints, including payment slip attachments."""

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
from opsbook.models.entities import JobStatus, JobType, PaymentType
from opsbook.services.ledger_service import CompanyIncomeCreateData, CompanyIncomeUpdateData, LedgerService
from opsbook.services.storage import COMPANY_INCOME_BUCKET

router = APIRouter(prefix="/company-income", tags=["company-income"])


class CompanyIncomeCreatePayload(BaseModel):
    brand: str = Field(min_length=1, max_length=255)
    client: str | None = Field(default=None, max_length=255)
    amount: Decimal = Field(gt=0)
    payment_type: PaymentType = PaymentType.FULL
    payment_method: str = Field(min_length=1, max_length=64)
    date: dt.date
    job_status: JobStatus = JobStatus.COMPLETED
    job_completion_date: dt.date | None = None
    job_type: JobType | None = None


class CompanyIncomeUpdatePayload(BaseModel):
    brand: str | None = Field(default=None, min_length=1, max_length=255)
    client: str | None = Field(default=None, max_length=255)
    amount: Decimal | None = Field(default=None, gt=0)
    payment_type: PaymentType | None = None
    payment_method: str | None = Field(default=None, min_length=1, max_length=64)
    date: dt.date | None = None
    job_status: JobStatus | None = None
    job_completion_date: dt.date | None = None
    job_type: JobType | None = None


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


@router.get("")
def list_company_income(
    month: str | None = Query(default=None),
    brand: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target_month = resolve_month(month)
    rows = service.list_company_income(context=context, month=target_month, brand=brand)
    return {"month": target_month, "items": [service.serialize_company_income(row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company_income(
    payload: CompanyIncomeCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_company_income(
        context=context,
        data=CompanyIncomeCreateData(
            brand=payload.brand,
            client=payload.client,
            amount=payload.amount,
            payment_type=payload.payment_type,
            payment_method=payload.payment_method,
            date=payload.date,
            job_status=payload.job_status,
            job_completion_date=payload.job_completion_date,
            job_type=payload.job_type,
        ),
    )
    return service.serialize_company_income(row)


@router.patch("/{income_id}")
def update_company_income(
    income_id: UUID,
    payload: CompanyIncomeUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_company_income(
        context=context,
        income_id=income_id,
        data=CompanyIncomeUpdateData(
            brand=payload.brand,
            client=payload.client,
            amount=payload.amount,
            payment_type=payload.payment_type,
            payment_method=payload.payment_method,
            date=payload.date,
            job_status=payload.job_status,
            job_completion_date=payload.job_completion_date,
            job_type=payload.job_type,
        ),
    )
    return service.serialize_company_income(row)


@router.delete("/{income_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company_income(
    income_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_company_income(context=context, income_id=income_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{income_id}/payment-slip")
async def put_payment_slip(
    income_id: UUID,
    request: Request,
    filename: str | None = Query(default=None, max_length=255),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    content = await request.body()
    key = service.upload_payment_slip(context=context, income_id=income_id, filename=filename, content=content)
    return {"payment_slip_path": key, "url": service.attachment_url(COMPANY_INCOME_BUCKET, key)}


@router.get("/{income_id}/payment-slip")
def get_payment_slip(
    income_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    key, content = _service(db).download_payment_slip(context=context, income_id=income_id)
    return attachment_response(filename=key, content=content)
