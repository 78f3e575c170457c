"""Vendor and vendor bill endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from opsbook.api.files import attachment_response, resolve_month
from opsbook.core.auth import RequestUserContext, require_roles
from opsbook.db.dependencies import get_db_session
from opsbook.models.entities import BillStatus, UserRole
from opsbook.services.ledger_service import (
    LedgerService,
    VendorBillCreateData,
    VendorBillUpdateData,
    VendorCreateData,
    VendorUpdateData,
)
from opsbook.services.storage import RECEIPTS_BUCKET

router = APIRouter(tags=["vendors"])


class VendorCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class VendorUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class VendorBillCreatePayload(BaseModel):
    vendor_id: UUID
    amount: Decimal = Field(gt=0)
    due_date: dt.date
    description: str | None = Field(default=None, max_length=2000)
    method: str | None = Field(default=None, max_length=64)


class VendorBillUpdatePayload(BaseModel):
    vendor_id: UUID | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    due_date: dt.date | None = None
    description: str | None = Field(default=None, max_length=2000)
    method: str | None = Field(default=None, max_length=64)


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


# ---------- Vendors ----------
@router.get("/vendors")
def list_vendors(
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_vendor(row) for row in service.list_vendors(context=context)]}


@router.post("/vendors", status_code=status.HTTP_201_CREATED)
def create_vendor(
    payload: VendorCreatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_vendor(
        context=context,
        data=VendorCreateData(name=payload.name, description=payload.description),
    )
    return service.serialize_vendor(row)


@router.patch("/vendors/{vendor_id}")
def update_vendor(
    vendor_id: UUID,
    payload: VendorUpdatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_vendor(
        context=context,
        vendor_id=vendor_id,
        data=VendorUpdateData(name=payload.name, description=payload.description),
    )
    return service.serialize_vendor(row)


@router.delete("/vendors/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vendor(
    vendor_id: UUID,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_vendor(context=context, vendor_id=vendor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Vendor bills ----------
@router.get("/vendor-bills")
def list_vendor_bills(
    month: str | None = Query(default=None),
    bill_status: BillStatus | None = Query(default=None, alias="status"),
    vendor_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target_month = resolve_month(month)
    rows = service.list_vendor_bills(
        context=context,
        month=target_month,
        bill_status=bill_status,
        vendor_id=vendor_id,
    )
    return {"month": target_month, "items": [service.serialize_vendor_bill(row) for row in rows]}


@router.post("/vendor-bills", status_code=status.HTTP_201_CREATED)
def create_vendor_bill(
    payload: VendorBillCreatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_vendor_bill(
        context=context,
        data=VendorBillCreateData(
            vendor_id=payload.vendor_id,
            amount=payload.amount,
            due_date=payload.due_date,
            description=payload.description,
            method=payload.method,
        ),
    )
    return service.serialize_vendor_bill(row)


@router.patch("/vendor-bills/{bill_id}")
def update_vendor_bill(
    bill_id: UUID,
    payload: VendorBillUpdatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_vendor_bill(
        context=context,
        bill_id=bill_id,
        data=VendorBillUpdateData(
            vendor_id=payload.vendor_id,
            amount=payload.amount,
            due_date=payload.due_date,
            description=payload.description,
            method=payload.method,
        ),
    )
    return service.serialize_vendor_bill(row)


@router.post("/vendor-bills/{bill_id}/pay")
def pay_vendor_bill(
    bill_id: UUID,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_vendor_bill(service.mark_vendor_bill_paid(context=context, bill_id=bill_id))


@router.delete("/vendor-bills/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vendor_bill(
    bill_id: UUID,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_vendor_bill(context=context, bill_id=bill_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/vendor-bills/{bill_id}/invoice")
async def put_invoice(
    bill_id: UUID,
    request: Request,
    filename: str | None = Query(default=None, max_length=255),
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    content = await request.body()
    key = service.upload_invoice(context=context, bill_id=bill_id, filename=filename, content=content)
    return {"invoice_path": key, "url": service.attachment_url(RECEIPTS_BUCKET, key)}


@router.get("/vendor-bills/{bill_id}/invoice")
def get_invoice(
    bill_id: UUID,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> Response:
    key, content = _service(db).download_invoice(context=context, bill_id=bill_id)
    return attachment_response(filename=key, content=content)
