"""ORM model for application users."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from tenantauth.models.base import Base


class User(Base):
    """
    Identity record for local and federated login.

    Users are deactivated (is_active=False), never hard-deleted by the auth core.
    password_hash is NULL for users created through federated login.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    password_hash = Column(Text, nullable=True)
    federated_id = Column(String(255), nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    login_attempts = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True), nullable=True)
    job_title = Column(String(255), nullable=True)
    mobile_no = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user_roles = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
