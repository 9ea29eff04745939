"""
Tests for password hashing and JWT helpers.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import ExpiredSignatureError, JWTError

from app.core.security import (
    PasswordHasher,
    create_token,
    decode_token,
    get_password_hash,
    verify_password,
)

PEPPER = "unit-test-pepper"


class TestPasswordHashing:
    """Peppered bcrypt hashing."""

    def test_hash_roundtrip(self):
        hashed = get_password_hash("Passw0rd", PEPPER, rounds=4)
        assert hashed.startswith("$2")
        assert verify_password("Passw0rd", hashed, PEPPER)
        assert not verify_password("Passw0rd!", hashed, PEPPER)

    def test_pepper_is_part_of_the_hash(self):
        hashed = get_password_hash("Passw0rd", PEPPER, rounds=4)
        assert not verify_password("Passw0rd", hashed, "another-pepper")

    def test_salt_differs_per_hash(self):
        assert get_password_hash("Passw0rd", PEPPER, rounds=4) != get_password_hash("Passw0rd", PEPPER, rounds=4)

    def test_long_passwords_are_not_truncated(self):
        """Inputs past bcrypt's 72-byte limit still differ."""
        base = "A1" + "x" * 80
        hashed = get_password_hash(base + "1", PEPPER, rounds=4)
        assert not verify_password(base + "2", hashed, PEPPER)

    def test_corrupt_hash_does_not_verify(self):
        assert verify_password("Passw0rd", "not-a-bcrypt-hash", PEPPER) is False

    @pytest.mark.asyncio
    async def test_async_hasher(self):
        hasher = PasswordHasher(PEPPER, rounds=4)
        hashed = await hasher.hash("Passw0rd")
        assert await hasher.verify("Passw0rd", hashed)
        assert not await hasher.verify("Wrong0rd", hashed)
        assert await hasher.verify_dummy("Passw0rd") is False


class TestJWT:
    """HS256 token helpers."""

    def test_roundtrip_adds_standard_claims(self):
        token = create_token({"userId": 7, "verified": False}, "k", timedelta(days=30))
        payload = decode_token(token, "k")
        assert payload["userId"] == 7
        assert payload["verified"] is False
        assert payload["exp"] - payload["iat"] == 30 * 24 * 3600
        assert payload["jti"]

    def test_same_second_tokens_differ(self):
        now = datetime.now(timezone.utc)
        first = create_token({"userId": 1}, "k", timedelta(days=1), now=now)
        second = create_token({"userId": 1}, "k", timedelta(days=1), now=now)
        assert first != second

    def test_wrong_key_rejected(self):
        token = create_token({"userId": 1}, "k", timedelta(days=1))
        with pytest.raises(JWTError):
            decode_token(token, "other")

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(days=31)
        token = create_token({"userId": 1}, "k", timedelta(days=30), now=past)
        with pytest.raises(ExpiredSignatureError):
            decode_token(token, "k")
