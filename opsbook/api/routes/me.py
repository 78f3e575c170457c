"""Current user endpoint."""

from fastapi import APIRouter, Depends

from opsbook.core.auth import VIEW_REPORT_ROLES, RequestUserContext, get_current_user_context, has_role

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated profile and role."""

    return {
        "id": str(context.profile_id),
        "email": context.email,
        "full_name": context.full_name,
        "display_name": context.display_name,
        "role": context.role.value,
        "can_view_reports": has_role(context, VIEW_REPORT_ROLES),
        "is_admin": context.is_admin,
    }
