"""Export endpoints for employee reports and monthly registers."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from opsbook.api.files import attachment_response, resolve_month
from opsbook.core.auth import RequestUserContext, get_current_user_context
from opsbook.db.dependencies import get_db_session
from opsbook.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/employee-report")
def export_employee_report(
    format: str = Query(default="csv"),
    month: list[str] | None = Query(default=None),
    employee_id: list[UUID] | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_employee_report(
        context=context,
        format_name=format,
        months=month,
        employee_ids=employee_id,
    )
    return attachment_response(filename=exported.filename, content=exported.content, media_type=exported.media_type)


@router.get("/{entity}")
def export_entity(
    entity: str,
    format: str = Query(default="csv"),
    month: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_entity(
        context=context,
        entity=entity,
        month=resolve_month(month),
        format_name=format,
    )
    return attachment_response(filename=exported.filename, content=exported.content, media_type=exported.media_type)
