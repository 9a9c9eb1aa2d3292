"""Pydantic request/response schemas."""

from tenantauth.schemas.auth import (
    LoginRequest,
    RefreshRequest,
    UserDetails,
    UserListItem,
    UsersListResponse,
)
from tenantauth.schemas.envelope import ErrorResponse, SuccessResponse
from tenantauth.schemas.health import HealthResponse
from tenantauth.schemas.identity import FederatedProfile
from tenantauth.schemas.tokens import AccessClaims, RefreshClaims, TokenPair

__all__ = [
    "AccessClaims",
    "ErrorResponse",
    "FederatedProfile",
    "HealthResponse",
    "LoginRequest",
    "RefreshClaims",
    "RefreshRequest",
    "SuccessResponse",
    "TokenPair",
    "UserDetails",
    "UserListItem",
    "UsersListResponse",
]
