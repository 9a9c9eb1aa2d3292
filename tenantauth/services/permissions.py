"""Live role and permission lookups shared by login, refresh, the authenticator and the cache."""

import logging
import uuid
from collections.abc import Iterable

from pydantic import BaseModel, Field, TypeAdapter
from sqlalchemy.orm import Session

from tenantauth.core.errors import DefaultRoleMissing
from tenantauth.models import Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


class RoleGrant(BaseModel):
    """One row of the role -> permission join."""

    role_id: int = Field(ge=0)
    role_name: str = Field(min_length=1)
    permission: str = Field(min_length=1)


_grants_adapter = TypeAdapter(list[RoleGrant])


def resolve_default_role(db: Session, user_id: uuid.UUID) -> Role:
    """
    Return the user's single default role.

    Zero or several default rows break the one-default invariant; both raise
    DefaultRoleMissing rather than picking one.
    """
    roles = (
        db.query(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id, UserRole.is_default.is_(True))
        .all()
    )
    if not roles:
        raise DefaultRoleMissing()
    if len(roles) > 1:
        logger.error(
            "Integrity violation: user %s has %d default roles (%s)",
            user_id,
            len(roles),
            ", ".join(str(r.id) for r in roles),
        )
        raise DefaultRoleMissing("User has more than one default role")
    return roles[0]


def get_user_role_ids(db: Session, user_id: uuid.UUID) -> list[int]:
    """Every role id the user holds, default or not."""
    rows = db.query(UserRole.role_id).filter(UserRole.user_id == user_id).all()
    return [row.role_id for row in rows]


def aggregate_permissions(db: Session, role_ids: Iterable[int]) -> list[str]:
    """Union of permission codes granted to any of role_ids, de-duplicated and sorted."""
    role_ids = list(role_ids)
    if not role_ids:
        return []
    rows = (
        db.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id.in_(role_ids))
        .distinct()
        .all()
    )
    return sorted(row.code for row in rows)


def load_role_grants(db: Session) -> list[RoleGrant]:
    """Read the full Role x RolePermission x Permission join and validate its shape."""
    rows = (
        db.query(Role.id, Role.name, Permission.code)
        .join(RolePermission, RolePermission.role_id == Role.id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .all()
    )
    return _grants_adapter.validate_python(
        [
            {
                "role_id": role_id,
                "role_name": getattr(role_name, "value", role_name),
                "permission": code,
            }
            for role_id, role_name, code in rows
        ]
    )


def build_permission_map(grants: Iterable[RoleGrant]) -> dict[int, frozenset[str]]:
    """Group grants into role id -> frozenset of permission codes."""
    collected: dict[int, set[str]] = {}
    for grant in grants:
        collected.setdefault(grant.role_id, set()).add(grant.permission)
    return {role_id: frozenset(codes) for role_id, codes in collected.items()}
