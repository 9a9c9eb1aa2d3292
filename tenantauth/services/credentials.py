"""
Credential verification for local (email/password) and federated login.

Both paths return the User row to issue tokens for. Every failure is raised
before any token or cookie exists.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tenantauth.core.errors import (
    AccountInactive,
    AccountLocked,
    InvalidCredentials,
    InvalidFederatedToken,
    NoActiveRolesConfigured,
)
from tenantauth.core.security import verify_password
from tenantauth.models import Role, User, UserRole
from tenantauth.services.identity_provider import fetch_federated_profile

if TYPE_CHECKING:
    from tenantauth.core.config import Settings
    from tenantauth.schemas.identity import FederatedProfile

logger = logging.getLogger(__name__)


def _register_failed_attempt(db: Session, user: User, max_attempts: int) -> None:
    if max_attempts <= 0:
        return
    user.login_attempts = (user.login_attempts or 0) + 1
    if user.login_attempts >= max_attempts and not user.is_locked:
        user.is_locked = True
        logger.warning(
            "Account locked after %d failed login attempts: user_id=%s",
            user.login_attempts,
            user.id,
        )
    db.commit()


def record_successful_login(db: Session, user: User) -> None:
    """Stamp last_login and clear the failed-attempt counter; call once login can no longer fail."""
    user.last_login = datetime.now(timezone.utc)
    user.login_attempts = 0
    db.commit()


def verify_local(db: Session, email: str, password: str, settings: Settings) -> User:
    """
    Check email/password against the stored bcrypt hash.

    Unknown email, missing hash and wrong password share one error so callers
    cannot tell them apart. Inactive and (when LOGIN_MAX_ATTEMPTS > 0) locked
    accounts are reported separately, only after the password matched.

    Blocking (bcrypt and sync queries): async callers run it in a worker thread.
    Does not stamp the login; see record_successful_login.
    """
    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.password_hash:
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        _register_failed_attempt(db, user, settings.LOGIN_MAX_ATTEMPTS)
        raise InvalidCredentials()

    if not user.is_active:
        raise AccountInactive()
    if settings.LOGIN_MAX_ATTEMPTS > 0 and user.is_locked:
        raise AccountLocked()

    return user


def _first_active_role(db: Session) -> Role | None:
    """Default role for new federated users: the active role with the lowest id."""
    return db.query(Role).filter(Role.is_active.is_(True)).order_by(Role.id).first()


def _create_federated_user(db: Session, profile: FederatedProfile, email: str) -> User:
    role = _first_active_role(db)
    if role is None:
        logger.error("Federated signup for %s refused: no active roles configured", email)
        raise NoActiveRolesConfigured()

    user = User(
        name=profile.display_name or email,
        email=email,
        federated_id=profile.id,
        is_active=True,
    )
    try:
        db.add(user)
        db.flush()
        db.add(UserRole(user_id=user.id, role_id=role.id, is_default=True))
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent first login for the same email.
        db.rollback()
        existing = db.query(User).filter(User.email == email).first()
        if existing is None:
            raise
        return existing
    except Exception:
        db.rollback()
        raise
    logger.info("Created federated user: user_id=%s role_id=%s", user.id, role.id)
    return user


def resolve_federated_user(db: Session, profile: FederatedProfile) -> User:
    """Find or create the local user for a verified profile. Blocking."""
    email = profile.normalized_email()
    if not email:
        raise InvalidFederatedToken("Identity provider profile has no email")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = _create_federated_user(db, profile, email)

    if not user.is_active:
        raise AccountInactive()
    return user


async def verify_federated(db: Session, bearer_token: str, settings: Settings) -> User:
    """
    Resolve a federated bearer token to a local user, creating one on first login.

    Idempotent: a second call for the same identity returns the existing row.
    The database part runs in the threadpool so the event loop never blocks on it.
    """
    profile = await fetch_federated_profile(bearer_token, settings)
    return await run_in_threadpool(resolve_federated_user, db, profile)
