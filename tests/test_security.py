"""Unit tests for app.core.security: bcrypt helpers and access/refresh token issuance and verification."""

import unittest
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import jwt

from app.core.config import Settings
from app.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    token_subject,
    verify_password,
)

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


def _settings(**overrides: object) -> Settings:
    values = {
        "ACCESS_TOKEN_SECRET": ACCESS_SECRET,
        "REFRESH_TOKEN_SECRET": REFRESH_SECRET,
        "ACCESS_TOKEN_EXPIRE_MINUTES": 15,
        "REFRESH_TOKEN_EXPIRE_DAYS": 10,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _user(user_id: int = 7) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id, username="alice", email="alice@example.com", full_name="Alice Liddell"
    )


class TestPasswordHashing(unittest.TestCase):
    """hash_password/verify_password round-trip through bcrypt."""

    def test_correct_password_verifies(self) -> None:
        hashed = hash_password("correct horse", rounds=4)
        self.assertNotEqual(hashed, "correct horse")
        self.assertTrue(verify_password("correct horse", hashed))

    def test_wrong_password_rejected(self) -> None:
        hashed = hash_password("correct horse", rounds=4)
        self.assertFalse(verify_password("wrong horse", hashed))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))


class TestAccessToken(unittest.TestCase):
    """Access tokens are signed with the access secret and carry the user id."""

    def test_decodes_with_access_secret(self) -> None:
        settings = _settings()
        token = create_access_token(_user(), settings)
        payload = decode_access_token(token, settings)
        self.assertEqual(payload["sub"], "7")
        self.assertEqual(payload["username"], "alice")
        self.assertEqual(payload["type"], "access")
        self.assertEqual(token_subject(payload), 7)

    def test_expiry_matches_setting(self) -> None:
        settings = _settings(ACCESS_TOKEN_EXPIRE_MINUTES=5)
        payload = decode_access_token(create_access_token(_user(), settings), settings)
        self.assertEqual(payload["exp"] - payload["iat"], 5 * 60)

    def test_not_accepted_as_refresh_token(self) -> None:
        settings = _settings()
        token = create_access_token(_user(), settings)
        with self.assertRaises(InvalidTokenError):
            decode_refresh_token(token, settings)

    def test_expired_token_rejected(self) -> None:
        settings = _settings()
        past = datetime.now(UTC) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "7", "type": "access", "iat": past, "exp": past + timedelta(minutes=1)},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError) as ctx:
            decode_access_token(token, settings)
        self.assertIn("expired", ctx.exception.message)

    def test_forged_signature_rejected(self) -> None:
        settings = _settings()
        forged = create_access_token(
            _user(), _settings(ACCESS_TOKEN_SECRET="attacker-secret")
        )
        with self.assertRaises(InvalidTokenError):
            decode_access_token(forged, settings)

    def test_wrong_type_with_right_secret_rejected(self) -> None:
        settings = _settings()
        now = datetime.now(UTC)
        token = jwt.encode(
            {"sub": "7", "type": "refresh", "iat": now, "exp": now + timedelta(minutes=5)},
            ACCESS_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            decode_access_token(token, settings)

    def test_garbage_rejected(self) -> None:
        with self.assertRaises(InvalidTokenError):
            decode_access_token("not.a.jwt", _settings())


class TestRefreshToken(unittest.TestCase):
    """Refresh tokens use their own secret and are unique per issuance."""

    def test_decodes_with_refresh_secret_only(self) -> None:
        settings = _settings()
        token = create_refresh_token(7, settings)
        self.assertEqual(token_subject(decode_refresh_token(token, settings)), 7)
        with self.assertRaises(InvalidTokenError):
            decode_access_token(token, settings)

    def test_expiry_matches_setting(self) -> None:
        settings = _settings(REFRESH_TOKEN_EXPIRE_DAYS=3)
        payload = decode_refresh_token(create_refresh_token(1, settings), settings)
        self.assertEqual(payload["exp"] - payload["iat"], 3 * 24 * 60 * 60)

    def test_tokens_issued_back_to_back_differ(self) -> None:
        settings = _settings()
        self.assertNotEqual(create_refresh_token(1, settings), create_refresh_token(1, settings))


class TestTokenSubject(unittest.TestCase):
    def test_non_integer_subject_rejected(self) -> None:
        with self.assertRaises(InvalidTokenError):
            token_subject({"sub": "abc"})


class TestSettingsSecrets(unittest.TestCase):
    """Settings refuse identical secrets and dev placeholders in prod."""

    def test_identical_secrets_rejected(self) -> None:
        with self.assertRaises(ValueError):
            _settings(REFRESH_TOKEN_SECRET=ACCESS_SECRET)

    def test_prod_requires_explicit_secrets(self) -> None:
        with self.assertRaises(ValueError):
            Settings(
                _env_file=None,
                APP_ENV="prod",
                ACCESS_TOKEN_SECRET="dev-access-secret-change-me",
                REFRESH_TOKEN_SECRET="dev-refresh-secret-change-me",
            )

    def test_prod_accepts_explicit_secrets(self) -> None:
        settings = _settings(APP_ENV="prod")
        self.assertEqual(settings.APP_ENV, "prod")

    def test_access_lifetime_must_be_shorter_than_refresh(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            _settings(ACCESS_TOKEN_EXPIRE_MINUTES=1440, REFRESH_TOKEN_EXPIRE_DAYS=1)
        self.assertIn("ACCESS_TOKEN_EXPIRE_MINUTES", str(ctx.exception))

    def test_access_lifetime_just_under_refresh_accepted(self) -> None:
        settings = _settings(ACCESS_TOKEN_EXPIRE_MINUTES=1439, REFRESH_TOKEN_EXPIRE_DAYS=1)
        self.assertEqual(settings.ACCESS_TOKEN_EXPIRE_MINUTES, 1439)


if __name__ == "__main__":
    unittest.main()
