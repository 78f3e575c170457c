"""Timesheet entry endpoints."""

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
from opsbook.models.entities import WorkType
from opsbook.services.ledger_service import LedgerService, TimesheetCreateData, TimesheetUpdateData

router = APIRouter(prefix="/timesheets", tags=["timesheets"])


class TimesheetCreatePayload(BaseModel):
    date: dt.date
    work_type: WorkType
    job_description: str = Field(min_length=1, max_length=2000)
    hours: Decimal | None = Field(default=None, gt=0)
    hourly_rate: Decimal | None = Field(default=None, gt=0)
    job_count: int | None = Field(default=None, ge=1)
    job_rate: Decimal | None = Field(default=None, gt=0)
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    total_salary: Decimal | None = Field(default=None, ge=0)
    user_id: UUID | None = None


class TimesheetUpdatePayload(BaseModel):
    date: dt.date | None = None
    work_type: WorkType | None = None
    job_description: str | None = Field(default=None, min_length=1, max_length=2000)
    hours: Decimal | None = Field(default=None, gt=0)
    hourly_rate: Decimal | None = Field(default=None, gt=0)
    job_count: int | None = Field(default=None, ge=1)
    job_rate: Decimal | None = Field(default=None, gt=0)
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    total_salary: Decimal | None = Field(default=None, ge=0)


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


@router.get("")
def list_timesheet_entries(
    month: str | None = Query(default=None),
    user_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    target_month = resolve_month(month)
    rows = service.list_timesheet_entries(context=context, month=target_month, user_id=user_id)
    return {"month": target_month, "items": [service.serialize_timesheet_entry(row) for row in rows]}


@router.get("/{entry_id}")
def get_timesheet_entry(
    entry_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_timesheet_entry(service.get_timesheet_entry(context=context, entry_id=entry_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_timesheet_entry(
    payload: TimesheetCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_timesheet_entry(
        context=context,
        data=TimesheetCreateData(
            date=payload.date,
            work_type=payload.work_type,
            job_description=payload.job_description,
            hours=payload.hours,
            hourly_rate=payload.hourly_rate,
            job_count=payload.job_count,
            job_rate=payload.job_rate,
            start_time=payload.start_time,
            end_time=payload.end_time,
            total_salary=payload.total_salary,
            user_id=payload.user_id,
        ),
    )
    return service.serialize_timesheet_entry(row)


@router.patch("/{entry_id}")
def update_timesheet_entry(
    entry_id: UUID,
    payload: TimesheetUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_timesheet_entry(
        context=context,
        entry_id=entry_id,
        data=TimesheetUpdateData(
            date=payload.date,
            work_type=payload.work_type,
            job_description=payload.job_description,
            hours=payload.hours,
            hourly_rate=payload.hourly_rate,
            job_count=payload.job_count,
            job_rate=payload.job_rate,
            start_time=payload.start_time,
            end_time=payload.end_time,
            total_salary=payload.total_salary,
        ),
    )
    return service.serialize_timesheet_entry(row)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_timesheet_entry(
    entry_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_timesheet_entry(context=context, entry_id=entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
