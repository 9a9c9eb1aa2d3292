"""Password hashing and JWT issuance/verification for access and refresh tokens."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import bcrypt
import jwt
from pydantic import ValidationError

from tenantauth.core.config import get_settings
from tenantauth.schemas.tokens import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    AccessClaims,
    RefreshClaims,
    TokenPair,
)

if TYPE_CHECKING:
    import uuid

    from tenantauth.core.config import Settings

# bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72

ClaimsT = TypeVar("ClaimsT", AccessClaims, RefreshClaims)


class TokenSubject(Protocol):
    id: uuid.UUID
    name: str
    email: str


class InvalidTokenError(Exception):
    """Raised when a token has a bad signature, is expired, or has the wrong claim shape."""


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    if rounds is None:
        rounds = get_settings().BCRYPT_ROUNDS
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _encode(payload: dict[str, Any], secret: str, expires_delta: timedelta, algorithm: str) -> str:
    now = datetime.now(UTC)
    to_encode = dict(payload)
    to_encode["iat"] = now
    to_encode["exp"] = now + expires_delta
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def create_access_token(
    user: TokenSubject,
    role_id: int,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Sign an access token carrying userId, name, email and the default roleId."""
    cfg = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=cfg.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "typ": TOKEN_TYPE_ACCESS,
        "userId": str(user.id),
        "name": user.name,
        "email": user.email,
        "roleId": role_id,
    }
    return _encode(payload, cfg.JWT_SECRET.get_secret_value(), expires_delta, cfg.JWT_ALGORITHM)


def create_refresh_token(
    user_id: uuid.UUID | str,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Sign a refresh token. It carries no role: refresh re-reads the current default role."""
    cfg = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(days=cfg.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {"typ": TOKEN_TYPE_REFRESH, "userId": str(user_id)}
    return _encode(
        payload, cfg.JWT_REFRESH_SECRET.get_secret_value(), expires_delta, cfg.JWT_ALGORITHM
    )


def issue_tokens(
    user: TokenSubject,
    role_id: int,
    access_expires: timedelta | None = None,
    settings: Settings | None = None,
) -> TokenPair:
    """
    Create the access/refresh pair for a user and their default role.

    access_expires overrides the login lifetime (refresh uses the shorter one).
    """
    return TokenPair(
        access_token=create_access_token(user, role_id, access_expires, settings),
        refresh_token=create_refresh_token(user.id, settings=settings),
    )


def _decode(token: str, secret: str, algorithm: str, model: type[ClaimsT]) -> ClaimsT:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError as e:
        raise InvalidTokenError(str(e)) from e
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidTokenError("Token claims do not match the expected token type") from e


def decode_access_token(token: str, settings: Settings | None = None) -> AccessClaims:
    """Verify signature and expiry of an access token and return its claims."""
    cfg = settings or get_settings()
    return _decode(token, cfg.JWT_SECRET.get_secret_value(), cfg.JWT_ALGORITHM, AccessClaims)


def decode_refresh_token(token: str, settings: Settings | None = None) -> RefreshClaims:
    """Verify signature and expiry of a refresh token and return its claims."""
    cfg = settings or get_settings()
    return _decode(
        token, cfg.JWT_REFRESH_SECRET.get_secret_value(), cfg.JWT_ALGORITHM, RefreshClaims
    )
