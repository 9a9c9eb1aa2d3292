"""
Resolve an access token to the identity and aggregated permissions of its user.

Steps: verify the token, load the user with their single default role, then
union the permissions of every role the user holds. Any failure is reported as
Unauthorized so the client never learns which step rejected it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from tenantauth.core.errors import DefaultRoleMissing, Unauthorized
from tenantauth.core.security import InvalidTokenError, decode_access_token
from tenantauth.models import User
from tenantauth.schemas.auth import UserDetails
from tenantauth.services.permissions import (
    aggregate_permissions,
    get_user_role_ids,
    resolve_default_role,
)

if TYPE_CHECKING:
    from tenantauth.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_SESSION = "Invalid session, please login again"


def extract_token(cookie_token: str | None, bearer_token: str | None) -> str | None:
    """Prefer the accessToken cookie; fall back to the Authorization bearer credentials."""
    if cookie_token:
        return cookie_token
    if bearer_token and bearer_token.strip():
        return bearer_token.strip()
    return None


def authenticate(db: Session, token: str | None, settings: Settings | None = None) -> UserDetails:
    """Verify token and build the UserDetails attached to the request."""
    if not token:
        raise Unauthorized("Authentication token missing")

    try:
        claims = decode_access_token(token, settings)
    except InvalidTokenError as e:
        logger.debug("Rejected access token: %s", e)
        raise Unauthorized("Invalid or expired token") from e

    user = db.query(User).filter(User.id == claims.user_id).first()
    if user is None:
        raise Unauthorized(INVALID_SESSION)

    try:
        default_role = resolve_default_role(db, user.id)
    except DefaultRoleMissing as e:
        logger.error("Rejected session for user %s: %s", user.id, e.message)
        raise Unauthorized(INVALID_SESSION) from e

    permissions = aggregate_permissions(db, get_user_role_ids(db, user.id))

    return UserDetails(
        id=user.id,
        name=user.name,
        email=user.email,
        role_id=default_role.id,
        role_name=getattr(default_role.name, "value", default_role.name),
        permissions=permissions,
    )
