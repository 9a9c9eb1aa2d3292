"""Unit tests for tenantauth.core.security: password hashing and the two token kinds."""

import unittest
import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import jwt
from pydantic import ValidationError

from tenantauth.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    issue_tokens,
    verify_password,
)
from tests.factories import make_settings


def _user(**kwargs: object) -> SimpleNamespace:
    defaults = {"id": uuid.uuid4(), "name": "Ada", "email": "ada@example.com"}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestPasswordHashing(unittest.TestCase):
    def test_hash_then_verify(self) -> None:
        hashed = hash_password("s3cret-pass", rounds=4)
        self.assertNotEqual(hashed, "s3cret-pass")
        self.assertTrue(verify_password("s3cret-pass", hashed))
        self.assertFalse(verify_password("wrong-pass", hashed))

    def test_malformed_hash_is_a_mismatch(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))


class TestIssueAndVerify(unittest.TestCase):
    """Access/refresh issuance, claim contract, expiry and secret separation."""

    def setUp(self) -> None:
        self.settings = make_settings()

    def test_access_token_round_trip(self) -> None:
        user = _user()
        pair = issue_tokens(user, 3, settings=self.settings)
        claims = decode_access_token(pair.access_token, self.settings)
        self.assertEqual(claims.user_id, user.id)
        self.assertEqual(claims.name, "Ada")
        self.assertEqual(claims.email, "ada@example.com")
        self.assertEqual(claims.role_id, 3)
        self.assertEqual(claims.typ, "access")

    def test_access_token_wire_claims(self) -> None:
        user = _user()
        token = create_access_token(user, 7, settings=self.settings)
        payload = jwt.decode(token, "test-access-secret", algorithms=["HS256"])
        self.assertEqual(payload["userId"], str(user.id))
        self.assertEqual(payload["roleId"], 7)
        self.assertEqual(payload["name"], "Ada")
        self.assertEqual(payload["email"], "ada@example.com")

    def test_refresh_token_carries_user_id_only(self) -> None:
        user = _user()
        pair = issue_tokens(user, 3, settings=self.settings)
        claims = decode_refresh_token(pair.refresh_token, self.settings)
        self.assertEqual(claims.user_id, user.id)
        payload = jwt.decode(pair.refresh_token, "test-refresh-secret", algorithms=["HS256"])
        self.assertNotIn("roleId", payload)
        self.assertNotIn("email", payload)

    def test_default_lifetimes(self) -> None:
        pair = issue_tokens(_user(), 1, settings=self.settings)
        access = decode_access_token(pair.access_token, self.settings)
        refresh = decode_refresh_token(pair.refresh_token, self.settings)
        self.assertEqual(access.exp - access.iat, 30 * 60)
        self.assertEqual(refresh.exp - refresh.iat, 7 * 24 * 60 * 60)

    def test_access_lifetime_override(self) -> None:
        pair = issue_tokens(
            _user(), 1, access_expires=timedelta(minutes=15), settings=self.settings
        )
        access = decode_access_token(pair.access_token, self.settings)
        self.assertEqual(access.exp - access.iat, 15 * 60)

    def test_expired_access_token_fails(self) -> None:
        token = create_access_token(
            _user(), 1, expires_delta=timedelta(seconds=-5), settings=self.settings
        )
        with self.assertRaises(InvalidTokenError):
            decode_access_token(token, self.settings)

    def test_refresh_signed_with_access_secret_fails(self) -> None:
        now = datetime.now(UTC)
        forged = jwt.encode(
            {
                "typ": "refresh",
                "userId": str(uuid.uuid4()),
                "iat": now,
                "exp": now + timedelta(days=7),
            },
            "test-access-secret",
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            decode_refresh_token(forged, self.settings)

    def test_tokens_are_not_interchangeable(self) -> None:
        pair = issue_tokens(_user(), 1, settings=self.settings)
        with self.assertRaises(InvalidTokenError):
            decode_refresh_token(pair.access_token, self.settings)
        with self.assertRaises(InvalidTokenError):
            decode_access_token(pair.refresh_token, self.settings)

    def test_wrong_claim_shape_is_rejected(self) -> None:
        # Valid signature with the access secret, but refresh-shaped claims.
        now = datetime.now(UTC)
        token = jwt.encode(
            {"typ": "refresh", "userId": str(uuid.uuid4()), "iat": now, "exp": now + timedelta(minutes=5)},
            "test-access-secret",
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            decode_access_token(token, self.settings)

    def test_token_without_exp_is_rejected(self) -> None:
        token = jwt.encode(
            {"typ": "refresh", "userId": str(uuid.uuid4()), "iat": datetime.now(UTC)},
            "test-refresh-secret",
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            decode_refresh_token(token, self.settings)

    def test_garbage_token_is_rejected(self) -> None:
        with self.assertRaises(InvalidTokenError):
            decode_access_token("not.a.jwt", self.settings)

    def test_refresh_token_has_no_role_even_when_issued_alone(self) -> None:
        user_id = uuid.uuid4()
        token = create_refresh_token(user_id, settings=self.settings)
        self.assertEqual(decode_refresh_token(token, self.settings).user_id, user_id)


class TestSettingsSecrets(unittest.TestCase):
    def test_identical_secrets_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="same", JWT_REFRESH_SECRET="same")

    def test_empty_secret_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="   ")


if __name__ == "__main__":
    unittest.main()
