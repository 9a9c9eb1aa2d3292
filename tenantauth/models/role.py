"""ORM models for roles and permissions (reference data seeded at deployment)."""

import enum

from sqlalchemy import Boolean, Column, Enum, Integer, String, Text
from sqlalchemy.orm import relationship

from tenantauth.models.base import Base


class RoleName(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"
    MODERATOR = "MODERATOR"
    VIEWER = "VIEWER"


class Role(Base):
    """Named capability bundle. A user may hold several; one of them is the default."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(
        Enum(RoleName, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        unique=True,
    )
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    role_permissions = relationship("RolePermission", back_populates="role")
    user_roles = relationship("UserRole", back_populates="role")


class Permission(Base):
    """Atomic capability identified by a unique code such as 'manageusers'."""

    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(256), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    role_permissions = relationship("RolePermission", back_populates="permission")
