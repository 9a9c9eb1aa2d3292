"""SQLAlchemy ORM models."""

from tenantauth.models.associations import RolePermission, UserRole
from tenantauth.models.base import Base
from tenantauth.models.role import Permission, Role, RoleName
from tenantauth.models.user import User

__all__ = [
    "Base",
    "Permission",
    "Role",
    "RoleName",
    "RolePermission",
    "User",
    "UserRole",
]
