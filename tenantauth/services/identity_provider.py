"""Fetch the caller's profile from the federated identity provider with their bearer token."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from tenantauth.core.errors import IdentityProviderUnavailable, InvalidFederatedToken
from tenantauth.schemas.identity import FederatedProfile

if TYPE_CHECKING:
    from tenantauth.core.config import Settings

logger = logging.getLogger(__name__)


async def fetch_federated_profile(bearer_token: str, settings: Settings) -> FederatedProfile:
    """
    GET the profile endpoint (Microsoft Graph /me by default) as the token's owner.

    Raises InvalidFederatedToken when the provider rejects the token (401/403) or
    returns a body we cannot read as a profile, IdentityProviderUnavailable when it
    is unreachable, times out, or answers with any other error status.
    """
    timeout = settings.FEDERATED_REQUEST_TIMEOUT_SEC
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(
                settings.FEDERATED_PROFILE_URL,
                headers={"Authorization": f"Bearer {bearer_token}"},
            )
    except httpx.TimeoutException as e:
        logger.warning("Identity provider timed out after %ss", timeout)
        raise IdentityProviderUnavailable("Identity provider timed out") from e
    except httpx.HTTPError as e:
        logger.warning("Identity provider unreachable: %s", e)
        raise IdentityProviderUnavailable() from e

    if resp.status_code in (401, 403):
        logger.info("Identity provider rejected token: status=%s", resp.status_code)
        raise InvalidFederatedToken()
    if resp.status_code >= 400:
        logger.warning("Identity provider returned status=%s", resp.status_code)
        raise IdentityProviderUnavailable(
            f"Identity provider returned status {resp.status_code}", status_code=502
        )

    try:
        return FederatedProfile.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise InvalidFederatedToken("Identity provider returned an unreadable profile") from e
