"""User administration endpoints (require the manageusers permission)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import and_
from sqlalchemy.orm import Session

from tenantauth.api.v1.auth import require_permission
from tenantauth.core.database import get_db
from tenantauth.core.permissions import PermissionCode
from tenantauth.models import Role, User, UserRole
from tenantauth.schemas.auth import UserDetails, UserListItem, UsersListResponse

router = APIRouter()


@router.get("", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[UserDetails, Depends(require_permission(PermissionCode.MANAGE_USERS.value))],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users with their default role."""
    rows = (
        db.query(User, Role.name)
        .outerjoin(UserRole, and_(UserRole.user_id == User.id, UserRole.is_default.is_(True)))
        .outerjoin(Role, Role.id == UserRole.role_id)
        .order_by(User.email)
        .all()
    )
    return UsersListResponse(
        users=[
            UserListItem(
                id=u.id,
                name=u.name,
                email=u.email,
                is_active=u.is_active,
                is_locked=u.is_locked,
                default_role=getattr(role_name, "value", role_name),
            )
            for u, role_name in rows
        ]
    )
