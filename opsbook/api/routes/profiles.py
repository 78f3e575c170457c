"""Admin user management endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from opsbook.core.auth import RequestUserContext, require_roles
from opsbook.db.dependencies import get_db_session
from opsbook.models.entities import UserRole
from opsbook.services.ledger_service import LedgerService, ProfileCreateData, ProfileUpdateData

router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileCreatePayload(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    full_name: str | None = Field(default=None, max_length=255)
    role: UserRole = UserRole.STAFF


class ProfileUpdatePayload(BaseModel):
    full_name: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None


def _service(db: Session) -> LedgerService:
    return LedgerService(db)


@router.get("")
def list_profiles(
    role: UserRole | None = Query(default=None),
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_profiles(context=context, role=role)
    return {"items": [service.serialize_profile(row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: ProfileCreatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.create_profile(
        context=context,
        data=ProfileCreateData(email=payload.email, full_name=payload.full_name, role=payload.role),
    )
    return service.serialize_profile(row)


@router.patch("/{profile_id}")
def update_profile(
    profile_id: UUID,
    payload: ProfileUpdatePayload,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.update_profile(
        context=context,
        profile_id=profile_id,
        data=ProfileUpdateData(full_name=payload.full_name, role=payload.role),
    )
    return service.serialize_profile(row)


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile(
    profile_id: UUID,
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_profile(context=context, profile_id=profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
