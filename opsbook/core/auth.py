"""Authentication context extraction and role guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from opsbook.core.config import get_settings
from opsbook.db.dependencies import get_db_session
from opsbook.models.entities import Profile, UserRole

VIEW_REPORT_ROLES = {UserRole.ADMIN, UserRole.MANAGER}
ADMIN_ROLES = {UserRole.ADMIN}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    profile_id: UUID
    email: str
    full_name: str | None
    role: UserRole

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def is_admin(self) -> bool:
        """Whether current user has admin role."""

        return self.role is UserRole.ADMIN


def _require_identity_headers(
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str | None]:
    if not x_auth_email or not x_auth_email.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity headers. Expected X-AUTH-EMAIL or enable development principal fallback.",
        )

    full_name = x_auth_name.strip() if x_auth_name and x_auth_name.strip() else None
    return x_auth_email.strip().lower(), full_name


def _resolve_identity(
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str | None, UserRole]:
    settings = get_settings()
    if x_auth_email:
        email, full_name = _require_identity_headers(x_auth_email, x_auth_name)
        return email, full_name, UserRole.STAFF

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_full_name.strip() or None,
            UserRole(settings.auth_dev_role),
        )

    email, full_name = _require_identity_headers(x_auth_email, x_auth_name)
    return email, full_name, UserRole.STAFF


def _upsert_profile(
    db: Session,
    *,
    email: str,
    full_name: str | None,
    role_on_create: UserRole,
) -> Profile:
    profile = db.scalar(select(Profile).where(Profile.email == email))
    now = datetime.utcnow()

    if profile is None:
        profile = Profile(
            email=email,
            full_name=full_name,
            role=role_on_create,
            created_at=now,
            updated_at=now,
        )
        db.add(profile)
        db.flush()
        return profile

    if full_name is not None and profile.full_name != full_name:
        profile.full_name = full_name
        profile.updated_at = now
        db.flush()
    return profile


def ensure_profile(
    db: Session,
    *,
    email: str,
    full_name: str | None = None,
    role: UserRole = UserRole.STAFF,
) -> Profile:
    """Ensure profile exists with the given role and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    normalized_name = full_name.strip() if full_name and full_name.strip() else None

    profile = _upsert_profile(db, email=normalized_email, full_name=normalized_name, role_on_create=role)
    if profile.role is not role:
        profile.role = role
        profile.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(profile)
    return profile


def get_current_user_context(
    x_auth_email: str | None = Header(default=None, alias="X-AUTH-EMAIL"),
    x_auth_name: str | None = Header(default=None, alias="X-AUTH-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and role.

    Identity comes from trusted headers set by the authenticating proxy.
    Unknown callers are registered as staff on first request.
    """

    email, full_name, role_on_create = _resolve_identity(x_auth_email, x_auth_name)
    profile = _upsert_profile(db, email=email, full_name=full_name, role_on_create=role_on_create)
    db.commit()

    return RequestUserContext(
        profile_id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role,
    )


def has_role(context: RequestUserContext, allowed_roles: set[UserRole]) -> bool:
    """Check whether user has any of the allowed roles."""

    return context.role in allowed_roles


def ensure_roles(context: RequestUserContext, allowed_roles: set[UserRole]) -> None:
    """Raise 403 unless the user has one of the allowed roles."""

    if not has_role(context, allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role permissions for this operation.",
        )


def ensure_owner_or_roles(
    context: RequestUserContext,
    *,
    owner_id: UUID,
    allowed_roles: set[UserRole],
) -> None:
    """Allow the record owner or any user holding one of the allowed roles."""

    if context.profile_id == owner_id or has_role(context, allowed_roles):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only the record owner or an administrator can access this record.",
    )


def require_roles(*roles: UserRole):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        ensure_roles(context, allowed)
        return context

    return dependency
