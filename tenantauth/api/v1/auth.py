"""
Login, refresh and logout endpoints plus the auth dependencies
(get_current_user, require_permission).

Tokens travel as cookies: accessToken (readable by client script) and
refreshToken (HttpOnly). The access token may also be sent as
'Authorization: Bearer <token>'. On POST /login that same header carries a
federated identity token instead.

Logout only tells the client to drop both cookies. Tokens are stateless, so a
token captured elsewhere stays valid until it expires.
"""

import logging
from datetime import timedelta
from typing import Annotated, Any, Callable

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tenantauth.core.config import Settings, get_settings
from tenantauth.core.database import get_db
from tenantauth.core.errors import Forbidden, MissingCredentials, Unauthorized
from tenantauth.core.security import InvalidTokenError, decode_refresh_token, issue_tokens
from tenantauth.models import User
from tenantauth.schemas.auth import LoginRequest, RefreshRequest, UserDetails
from tenantauth.schemas.envelope import success_response
from tenantauth.schemas.tokens import TokenPair
from tenantauth.services.authenticator import authenticate, extract_token
from tenantauth.services.credentials import record_successful_login, verify_federated, verify_local
from tenantauth.services.permissions import resolve_default_role

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_options(settings: Settings) -> dict[str, Any]:
    """Secure + SameSite=None + domain everywhere except the local environment."""
    if settings.is_local:
        return {"secure": False, "samesite": None, "domain": None}
    return {"secure": True, "samesite": "none", "domain": settings.COOKIE_DOMAIN}


def _set_auth_cookies(
    response: Response,
    tokens: TokenPair,
    access_max_age: timedelta,
    settings: Settings,
) -> None:
    options = _cookie_options(settings)
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=int(access_max_age.total_seconds()),
        httponly=False,
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=int(timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS).total_seconds()),
        httponly=True,
        **options,
    )


def _federated_token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is None:
        return None
    token = credentials.credentials.strip()
    # Browser clients send the literal string when no federated session exists.
    if not token or token == "undefined":
        return None
    return token


def _complete_login(db: Session, user: User, access_ttl: timedelta, settings: Settings) -> TokenPair:
    """Resolve the default role, then stamp the login and issue tokens. Blocking.

    The login is recorded only after the role lookup succeeds, so a failed
    lookup leaves last_login and login_attempts untouched.
    """
    default_role = resolve_default_role(db, user.id)
    record_successful_login(db, user)
    logger.info("Login succeeded: user_id=%s role_id=%s", user.id, default_role.id)
    return issue_tokens(user, default_role.id, access_expires=access_ttl, settings=settings)


@router.post("/login")
async def login(
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    body: Annotated[LoginRequest | None, Body()] = None,
) -> dict[str, Any]:
    """
    Authenticate with a federated bearer token (Authorization header) or with
    email/password in the body. Sets accessToken and refreshToken cookies.
    """
    federated_token = _federated_token(credentials)
    if federated_token is not None:
        user = await verify_federated(db, federated_token, settings)
    elif body is not None:
        user = await run_in_threadpool(verify_local, db, body.email, body.password, settings)
    else:
        raise MissingCredentials()

    access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    tokens = await run_in_threadpool(_complete_login, db, user, access_ttl, settings)
    _set_auth_cookies(response, tokens, access_ttl, settings)
    return success_response(data={}, message="Login Successful")


@router.api_route("/refresh", methods=["GET", "POST"])
def refresh(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: Annotated[RefreshRequest | None, Body()] = None,
) -> dict[str, Any]:
    """
    Rotate both tokens. The new access token embeds the user's current default
    role, so role changes take effect here; older access tokens keep their
    stale roleId until they expire.
    """
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    if not token:
        raise Unauthorized("Refresh token missing")

    try:
        claims = decode_refresh_token(token, settings)
    except InvalidTokenError as e:
        raise Unauthorized("Invalid refresh token") from e

    user = db.query(User).filter(User.id == claims.user_id).first()
    if user is None or not user.is_active:
        raise Unauthorized("Invalid refresh token")

    default_role = resolve_default_role(db, user.id)
    access_ttl = timedelta(minutes=settings.REFRESHED_ACCESS_TOKEN_EXPIRE_MINUTES)
    tokens = issue_tokens(user, default_role.id, access_expires=access_ttl, settings=settings)
    _set_auth_cookies(response, tokens, access_ttl, settings)
    return success_response(data={}, message="Tokens refreshed successfully")


@router.post("/logout")
def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Clear both cookies with the attributes they were set with. No server-side state changes."""
    options = _cookie_options(settings)
    for name, httponly in ((ACCESS_COOKIE, False), (REFRESH_COOKIE, True)):
        response.delete_cookie(name, httponly=httponly, **options)
    return success_response(data={}, message="Logged out successfully")


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserDetails:
    """
    Dependency: authenticate the request and attach UserDetails to request.state.

    Raises Unauthorized for a missing/invalid/expired token or a user without
    exactly one default role.
    """
    token = extract_token(
        request.cookies.get(ACCESS_COOKIE),
        credentials.credentials if credentials else None,
    )
    user_details = authenticate(db, token, settings)
    request.state.user_details = user_details
    return user_details


def require_permission(code: str) -> Callable[..., UserDetails]:
    """
    Dependency factory: allow the request only if the aggregated permissions of
    the current user contain code (exact match). Stack several for AND.
    """

    def permission_gate(
        current_user: Annotated[UserDetails, Depends(get_current_user)],
    ) -> UserDetails:
        if not current_user.has_permission(code):
            logger.info("Permission denied: user_id=%s permission=%s", current_user.id, code)
            raise Forbidden()
        return current_user

    permission_gate.__name__ = f"require_permission_{code}"
    return permission_gate
