"""Many-to-many association tables: role -> permissions and user -> roles."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from tenantauth.models.base import Base


class RolePermission(Base):
    """Grant of one permission to one role. The composite key forbids duplicate pairs."""

    __tablename__ = "role_permissions"

    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id = Column(
        Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
    )

    role = relationship("Role", back_populates="role_permissions")
    permission = relationship("Permission", back_populates="role_permissions")


class UserRole(Base):
    """
    Role held by a user.

    Exactly one row per user has is_default=True; that role is embedded in the
    access token. Permissions are aggregated over every row, default or not.
    """

    __tablename__ = "user_roles"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    is_default = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")
