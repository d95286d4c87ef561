"""Unit tests for password hashing, session tokens and reset tokens."""

import hashlib
from datetime import datetime, timedelta

import pytest
from jose import jwt

from app.errors import Unauthorized
from app.services.jwt import JWTService
from app.services.password import PasswordHasher
from app.services.reset_token import hash_reset_token, issue_reset_token


class TestPasswordHasher:
    def test_verify_matches_original(self):
        hasher = PasswordHasher(rounds=4)
        digest = hasher.hash("secret1")
        assert hasher.verify("secret1", digest) is True

    def test_verify_rejects_wrong_password(self):
        hasher = PasswordHasher(rounds=4)
        digest = hasher.hash("secret1")
        assert hasher.verify("wrong", digest) is False

    def test_hash_is_salted(self):
        hasher = PasswordHasher(rounds=4)
        first = hasher.hash("secret1")
        second = hasher.hash("secret1")
        assert first != second
        assert "secret1" not in first

    def test_cost_factor_is_fixed(self):
        assert PasswordHasher(rounds=5).hash("secret1").startswith("$2b$05$")

    def test_malformed_digest_raises(self):
        """A corrupt stored hash is an error, not a mismatch."""
        with pytest.raises(ValueError):
            PasswordHasher(rounds=4).verify("secret1", "not-a-bcrypt-hash")


class TestSessionTokens:
    def test_round_trip(self):
        service = JWTService()
        identity = service.verify_session_token(service.create_token(42))
        assert identity.user_id == 42
        assert abs(datetime.utcnow() - identity.issued_at) < timedelta(minutes=1)

    def test_token_lives_seven_days(self):
        service = JWTService()
        payload = service.decode_token(service.create_token(1))
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60
        assert service.max_age_seconds == 7 * 24 * 60 * 60

    def test_expired_token_rejected(self):
        service = JWTService()
        issued = datetime.utcnow() - timedelta(days=8)
        token = jwt.encode(
            {"sub": "1", "iat": issued, "exp": issued + timedelta(days=7)},
            service.secret_key,
            algorithm=service.algorithm,
        )
        with pytest.raises(Unauthorized):
            service.verify_session_token(token)

    def test_foreign_signature_rejected(self):
        service = JWTService()
        token = jwt.encode(
            {"sub": "1", "iat": datetime.utcnow(), "exp": datetime.utcnow() + timedelta(days=1)},
            "some-other-secret",
            algorithm=service.algorithm,
        )
        with pytest.raises(Unauthorized):
            service.verify_session_token(token)

    def test_token_without_subject_rejected(self):
        service = JWTService()
        token = jwt.encode(
            {"iat": datetime.utcnow(), "exp": datetime.utcnow() + timedelta(days=1)},
            service.secret_key,
            algorithm=service.algorithm,
        )
        with pytest.raises(Unauthorized):
            service.verify_session_token(token)


class TestResetTokens:
    def test_hash_is_sha256_of_plaintext(self):
        token = issue_reset_token()
        assert len(token.plaintext) == 40
        assert token.token_hash == hashlib.sha256(token.plaintext.encode()).hexdigest()
        assert hash_reset_token(token.plaintext) == token.token_hash

    def test_tokens_are_random(self):
        assert issue_reset_token().plaintext != issue_reset_token().plaintext

    def test_default_expiry_window(self):
        token = issue_reset_token()
        remaining = token.expires_at - datetime.utcnow()
        assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)

    def test_custom_expiry_window(self):
        token = issue_reset_token(expire_minutes=60)
        remaining = token.expires_at - datetime.utcnow()
        assert timedelta(minutes=59) < remaining <= timedelta(minutes=60)
