"""Tagged claim models for the two token kinds."""

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


class _Claims(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    user_id: uuid.UUID = Field(alias="userId")
    iat: int
    exp: int


class AccessClaims(_Claims):
    """Claims of the short-lived access token."""

    typ: Literal["access"]
    name: str
    email: str
    role_id: int = Field(alias="roleId")


class RefreshClaims(_Claims):
    """Claims of the long-lived refresh token: the user id only."""

    typ: Literal["refresh"]


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
