"""Tests for tenantauth.services.credentials and the identity provider client."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from tenantauth.core.errors import (
    AccountInactive,
    AccountLocked,
    IdentityProviderUnavailable,
    InvalidCredentials,
    InvalidFederatedToken,
    NoActiveRolesConfigured,
)
from tenantauth.models import RoleName, User, UserRole
from tenantauth.schemas.identity import FederatedProfile
from tenantauth.services.credentials import (
    _create_federated_user,
    record_successful_login,
    verify_federated,
    verify_local,
)
from tenantauth.services.identity_provider import fetch_federated_profile
from tests.factories import TEST_PASSWORD, add_role, add_user, make_session_factory, make_settings


def _profile(**kwargs: object) -> FederatedProfile:
    data = {
        "id": "00000000-0000-0000-0000-00000000abcd",
        "displayName": "Grace Hopper",
        "mail": "Grace.Hopper@Example.com",
        "userPrincipalName": "ghopper@example.onmicrosoft.com",
    }
    data.update(kwargs)
    return FederatedProfile.model_validate(data)


class CredentialsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.SessionLocal = make_session_factory()
        self.db = self.SessionLocal()

    def tearDown(self) -> None:
        self.db.close()


class TestVerifyLocal(CredentialsTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = add_role(self.db, RoleName.ADMIN, ("manageusers",))
        self.user = add_user(self.db, "ada@example.com", [(self.admin, True)])

    def test_valid_credentials(self) -> None:
        user = verify_local(self.db, "ada@example.com", TEST_PASSWORD, self.settings)
        self.assertEqual(user.id, self.user.id)
        # Stamping the login is left to the caller.
        self.assertIsNone(user.last_login)

    def test_record_successful_login(self) -> None:
        self.user.login_attempts = 2
        self.db.commit()
        record_successful_login(self.db, self.user)
        self.db.refresh(self.user)
        self.assertIsNotNone(self.user.last_login)
        self.assertEqual(self.user.login_attempts, 0)

    def test_failures_share_one_message(self) -> None:
        add_user(self.db, "nohash@example.com", [(self.admin, True)], password=None)
        cases = [
            ("nobody@example.com", TEST_PASSWORD),
            ("ada@example.com", "wrong-password"),
            ("nohash@example.com", TEST_PASSWORD),
        ]
        messages = set()
        for email, password in cases:
            with self.assertRaises(InvalidCredentials) as ctx:
                verify_local(self.db, email, password, self.settings)
            messages.add(ctx.exception.message)
        self.assertEqual(messages, {"Incorrect Email/Password"})

    def test_email_match_is_case_sensitive(self) -> None:
        with self.assertRaises(InvalidCredentials):
            verify_local(self.db, "ADA@example.com", TEST_PASSWORD, self.settings)

    def test_inactive_account(self) -> None:
        add_user(self.db, "off@example.com", [(self.admin, True)], is_active=False)
        with self.assertRaises(AccountInactive) as ctx:
            verify_local(self.db, "off@example.com", TEST_PASSWORD, self.settings)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_inactive_with_wrong_password_stays_generic(self) -> None:
        add_user(self.db, "off2@example.com", [(self.admin, True)], is_active=False)
        with self.assertRaises(InvalidCredentials):
            verify_local(self.db, "off2@example.com", "wrong-password", self.settings)

    def test_lockout_disabled_by_default(self) -> None:
        for _ in range(10):
            with self.assertRaises(InvalidCredentials):
                verify_local(self.db, "ada@example.com", "wrong-password", self.settings)
        self.db.refresh(self.user)
        self.assertFalse(self.user.is_locked)
        self.assertEqual(self.user.login_attempts, 0)
        verify_local(self.db, "ada@example.com", TEST_PASSWORD, self.settings)

    def test_lockout_after_max_attempts(self) -> None:
        settings = make_settings(LOGIN_MAX_ATTEMPTS=3)
        for _ in range(3):
            with self.assertRaises(InvalidCredentials):
                verify_local(self.db, "ada@example.com", "wrong-password", settings)
        self.db.refresh(self.user)
        self.assertTrue(self.user.is_locked)
        self.assertEqual(self.user.login_attempts, 3)
        with self.assertRaises(AccountLocked):
            verify_local(self.db, "ada@example.com", TEST_PASSWORD, settings)

    def test_success_resets_attempts(self) -> None:
        settings = make_settings(LOGIN_MAX_ATTEMPTS=5)
        with self.assertRaises(InvalidCredentials):
            verify_local(self.db, "ada@example.com", "wrong-password", settings)
        user = verify_local(self.db, "ada@example.com", TEST_PASSWORD, settings)
        self.assertEqual(user.login_attempts, 1)
        record_successful_login(self.db, user)
        self.assertEqual(user.login_attempts, 0)


@patch("tenantauth.services.credentials.fetch_federated_profile", new_callable=AsyncMock)
class TestVerifyFederated(CredentialsTestCase):
    def _count(self, model) -> int:
        return self.db.query(model).count()

    def test_creates_user_with_lowest_active_role(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.ADMIN, is_active=False)
        viewer = add_role(self.db, RoleName.VIEWER)
        add_role(self.db, RoleName.USER)
        mock_fetch.return_value = _profile()

        user = asyncio.run(verify_federated(self.db, "idp-token", self.settings))

        mock_fetch.assert_awaited_once_with("idp-token", self.settings)
        self.assertEqual(user.email, "grace.hopper@example.com")
        self.assertEqual(user.name, "Grace Hopper")
        self.assertIsNone(user.password_hash)
        self.assertEqual(user.federated_id, "00000000-0000-0000-0000-00000000abcd")
        rows = self.db.query(UserRole).filter(UserRole.user_id == user.id).all()
        self.assertEqual([(r.role_id, r.is_default) for r in rows], [(viewer.id, True)])

    def test_idempotent(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.USER)
        mock_fetch.return_value = _profile()

        first = asyncio.run(verify_federated(self.db, "idp-token", self.settings))
        second = asyncio.run(verify_federated(self.db, "idp-token", self.settings))

        self.assertEqual(first.id, second.id)
        self.assertEqual(self._count(User), 1)
        self.assertEqual(self._count(UserRole), 1)

    def test_principal_name_fallback(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.USER)
        mock_fetch.return_value = _profile(mail=None, userPrincipalName="  GHopper@Example.COM ")
        user = asyncio.run(verify_federated(self.db, "idp-token", self.settings))
        self.assertEqual(user.email, "ghopper@example.com")

    def test_returns_existing_local_user(self, mock_fetch: AsyncMock) -> None:
        role = add_role(self.db, RoleName.ADMIN)
        existing = add_user(self.db, "grace.hopper@example.com", [(role, True)])
        mock_fetch.return_value = _profile()
        user = asyncio.run(verify_federated(self.db, "idp-token", self.settings))
        self.assertEqual(user.id, existing.id)
        self.assertEqual(self._count(User), 1)

    def test_no_active_roles_creates_nothing(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.ADMIN, is_active=False)
        mock_fetch.return_value = _profile()
        with self.assertLogs("tenantauth.services.credentials", level="ERROR"):
            with self.assertRaises(NoActiveRolesConfigured) as ctx:
                asyncio.run(verify_federated(self.db, "idp-token", self.settings))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(self._count(User), 0)
        self.assertEqual(self._count(UserRole), 0)

    def test_profile_without_email(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.USER)
        mock_fetch.return_value = _profile(mail=None, userPrincipalName=None)
        with self.assertRaises(InvalidFederatedToken):
            asyncio.run(verify_federated(self.db, "idp-token", self.settings))
        self.assertEqual(self._count(User), 0)

    def test_inactive_existing_user(self, mock_fetch: AsyncMock) -> None:
        role = add_role(self.db, RoleName.USER)
        add_user(self.db, "grace.hopper@example.com", [(role, True)], is_active=False)
        mock_fetch.return_value = _profile()
        with self.assertRaises(AccountInactive):
            asyncio.run(verify_federated(self.db, "idp-token", self.settings))

    def test_provider_rejection_propagates(self, mock_fetch: AsyncMock) -> None:
        add_role(self.db, RoleName.USER)
        mock_fetch.side_effect = InvalidFederatedToken()
        with self.assertRaises(InvalidFederatedToken):
            asyncio.run(verify_federated(self.db, "bad-token", self.settings))
        self.assertEqual(self._count(User), 0)


class TestConcurrentFederatedSignup(CredentialsTestCase):
    """Two first logins for one identity: the insert that loses returns the winner."""

    def test_unique_violation_returns_existing_user(self) -> None:
        role = add_role(self.db, RoleName.USER)
        other = self.SessionLocal()
        try:
            winner_id = add_user(
                other, "grace.hopper@example.com", [(role, True)], password=None
            ).id
        finally:
            other.close()

        user = _create_federated_user(self.db, _profile(), "grace.hopper@example.com")

        self.assertEqual(user.id, winner_id)
        self.assertEqual(self.db.query(User).count(), 1)
        rows = self.db.query(UserRole).all()
        self.assertEqual([(r.user_id, r.is_default) for r in rows], [(winner_id, True)])


class TestFetchFederatedProfile(unittest.TestCase):
    """fetch_federated_profile with mocked httpx: status mapping, timeout, body parsing."""

    def setUp(self) -> None:
        self.settings = make_settings(FEDERATED_REQUEST_TIMEOUT_SEC=3.0)

    def _mock_client(self, mock_client_class: MagicMock, get: AsyncMock) -> None:
        mock_instance = MagicMock()
        mock_instance.get = get
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)

    def _response(self, status_code: int, body: object = None) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        resp.json.return_value = body if body is not None else {}
        return resp

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_success_sends_bearer_with_timeout(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(
            return_value=self._response(
                200, {"id": "abc", "displayName": "Grace", "mail": "g@example.com"}
            )
        )
        self._mock_client(mock_client_class, get)

        profile = asyncio.run(fetch_federated_profile("tok", self.settings))

        self.assertEqual(profile.normalized_email(), "g@example.com")
        self.assertEqual(mock_client_class.call_args[1]["timeout"], 3.0)
        self.assertEqual(get.call_args[0][0], "https://graph.microsoft.com/v1.0/me")
        self.assertEqual(get.call_args[1]["headers"], {"Authorization": "Bearer tok"})

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_unauthorized_is_invalid_token(self, mock_client_class: MagicMock) -> None:
        self._mock_client(mock_client_class, AsyncMock(return_value=self._response(401)))
        with self.assertRaises(InvalidFederatedToken):
            asyncio.run(fetch_federated_profile("tok", self.settings))

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_server_error_is_unavailable(self, mock_client_class: MagicMock) -> None:
        self._mock_client(mock_client_class, AsyncMock(return_value=self._response(500)))
        with self.assertRaises(IdentityProviderUnavailable) as ctx:
            asyncio.run(fetch_federated_profile("tok", self.settings))
        self.assertEqual(ctx.exception.status_code, 502)

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_timeout_is_unavailable(self, mock_client_class: MagicMock) -> None:
        self._mock_client(mock_client_class, AsyncMock(side_effect=httpx.ReadTimeout("slow")))
        with self.assertRaises(IdentityProviderUnavailable) as ctx:
            asyncio.run(fetch_federated_profile("tok", self.settings))
        self.assertEqual(ctx.exception.status_code, 503)

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_connect_error_is_unavailable(self, mock_client_class: MagicMock) -> None:
        self._mock_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused")))
        with self.assertRaises(IdentityProviderUnavailable):
            asyncio.run(fetch_federated_profile("tok", self.settings))

    @patch("tenantauth.services.identity_provider.httpx.AsyncClient")
    def test_unreadable_profile(self, mock_client_class: MagicMock) -> None:
        self._mock_client(mock_client_class, AsyncMock(return_value=self._response(200, ["x"])))
        with self.assertRaises(InvalidFederatedToken):
            asyncio.run(fetch_federated_profile("tok", self.settings))


if __name__ == "__main__":
    unittest.main()
