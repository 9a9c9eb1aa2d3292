"""Request/response schemas for auth endpoints and the authenticated user."""

import uuid

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_MAX_LEN = 255
PASSWORD_MAX_LEN = 128


class LoginRequest(BaseModel):
    """Credentials for local login."""

    email: str = Field(..., min_length=3, max_length=EMAIL_MAX_LEN, description="Email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain:
            raise ValueError("Email must be a valid email")
        return v


class RefreshRequest(BaseModel):
    """Body fallback for clients that cannot send the refreshToken cookie."""

    refresh_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("refreshToken", "refresh_token"),
    )


class UserDetails(BaseModel):
    """
    Identity attached to every authenticated request.

    role_id/role_name describe the default role; permissions is the union over
    all roles the user holds.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    name: str
    email: str
    role_id: int
    role_name: str
    permissions: list[str] = Field(default_factory=list)

    def has_permission(self, code: str) -> bool:
        return code in self.permissions


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    name: str
    email: str
    is_active: bool
    is_locked: bool
    default_role: str | None = None


class UsersListResponse(BaseModel):
    users: list[UserListItem]
