"""
Tests for the credential store against an in-memory database.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, ErrorCode, ForbiddenError, NotFoundError, ValidationFailed
from app.models import AccessToken, Credential, User

PASSWORD = "Passw0rd"


async def _count_credentials(db, email: str) -> int:
    result = await db.execute(
        select(func.count(Credential.id)).where(func.lower(Credential.email) == email.lower())
    )
    return result.scalar_one()


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_creates_unverified_credential_and_user(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await db.commit()

        user = await db.get(User, user_id)
        credential = await db.get(Credential, user.credential_id)
        assert credential.email == "alice@x.io"
        assert credential.verified is False
        assert credential.password_hash != PASSWORD
        assert await credential_store.get_verification_status(user_id) is False

    @pytest.mark.asyncio
    async def test_unverified_duplicates_are_allowed(self, db, credential_store):
        first = await credential_store.register_user("alice@x.io", PASSWORD)
        second = await credential_store.register_user("ALICE@x.io", PASSWORD)
        assert first != second
        assert await _count_credentials(db, "alice@x.io") == 2

    @pytest.mark.asyncio
    async def test_verified_email_is_busy(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await credential_store.verify_user(user_id)
        await db.commit()

        with pytest.raises(ConflictError) as exc:
            await credential_store.register_user("Alice@X.io", PASSWORD)
        assert exc.value.code == ErrorCode.EMAIL_BUSY


class TestSignIn:
    @pytest.mark.asyncio
    async def test_sign_in_returns_user_and_verified_bit(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await db.commit()

        assert await credential_store.sign_in("ALICE@x.io", PASSWORD) == (user_id, False)

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, db, credential_store):
        await credential_store.register_user("alice@x.io", PASSWORD)
        await db.commit()

        with pytest.raises(NotFoundError) as unknown:
            await credential_store.sign_in("nobody@x.io", PASSWORD)
        with pytest.raises(NotFoundError) as wrong:
            await credential_store.sign_in("alice@x.io", "Wrong0rd")
        assert unknown.value.code == wrong.value.code == ErrorCode.USER_NOT_FOUND
        assert unknown.value.message == wrong.value.message

    @pytest.mark.asyncio
    async def test_banned_user_is_refused(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await credential_store.set_ban(user_id, True)
        await db.commit()

        with pytest.raises(ForbiddenError) as exc:
            await credential_store.sign_in("alice@x.io", PASSWORD)
        assert exc.value.code == ErrorCode.USER_INACTIVE

    @pytest.mark.asyncio
    async def test_ban_unknown_user(self, credential_store):
        with pytest.raises(NotFoundError):
            await credential_store.set_ban(999, True)


class TestVerification:
    @pytest.mark.asyncio
    async def test_verify_collapses_every_other_credential(self, db, credential_store, session_store):
        loser = await credential_store.register_user("alice@x.io", PASSWORD)
        await session_store.store_token(loser, "loser-token")
        winner = await credential_store.register_user("Alice@x.io", PASSWORD)
        await db.commit()

        await credential_store.verify_user(winner)
        await db.commit()

        assert await credential_store.get_verification_status(winner) is True
        assert await _count_credentials(db, "alice@x.io") == 1
        assert await db.get(User, loser) is None
        tokens = await db.execute(select(AccessToken).where(AccessToken.user_id == loser))
        assert tokens.scalars().all() == []

    @pytest.mark.asyncio
    async def test_concurrent_verification_is_email_busy(self, db, credential_store):
        """A second verified row for the same email trips the partial unique index."""
        first = await credential_store.register_user("alice@x.io", PASSWORD)
        second = await credential_store.register_user("Alice@x.io", PASSWORD)
        await db.commit()
        # Each verification misses the other's row, as two racing sessions would
        credential_store._collapse_duplicates = AsyncMock(return_value=0)

        await credential_store.verify_user(first)
        await db.commit()

        with pytest.raises(ConflictError) as exc:
            await credential_store.verify_user(second)
        assert exc.value.code == ErrorCode.EMAIL_BUSY

        verified = await db.execute(select(func.count(Credential.id)).where(Credential.verified.is_(True)))
        assert verified.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_verify_unknown_user(self, credential_store):
        with pytest.raises(NotFoundError):
            await credential_store.verify_user(12345)


class TestPasswordChanges:
    @pytest.mark.asyncio
    async def test_change_password(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await credential_store.change_password(user_id, PASSWORD, "NewPassw0rd")
        await db.commit()

        assert await credential_store.sign_in("alice@x.io", "NewPassw0rd") == (user_id, False)
        with pytest.raises(NotFoundError):
            await credential_store.sign_in("alice@x.io", PASSWORD)

    @pytest.mark.asyncio
    async def test_same_password_rejected(self, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        with pytest.raises(ValidationFailed) as exc:
            await credential_store.change_password(user_id, PASSWORD, PASSWORD)
        assert exc.value.code == ErrorCode.PASSWORDS_EQUAL

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        with pytest.raises(ForbiddenError) as exc:
            await credential_store.change_password(user_id, "Wrong0rd", "NewPassw0rd")
        assert exc.value.code == ErrorCode.BAD_OLD_PASSWORD

    @pytest.mark.asyncio
    async def test_recover_prefers_verified_credential(self, db, credential_store):
        verified = await credential_store.register_user("alice@x.io", PASSWORD)
        await credential_store.verify_user(verified)
        await db.commit()

        assert await credential_store.recover_password("ALICE@x.io", "Passs@0101") == verified
        await db.commit()
        assert await credential_store.sign_in("alice@x.io", "Passs@0101") == (verified, True)

    @pytest.mark.asyncio
    async def test_recover_unknown_email(self, credential_store):
        with pytest.raises(NotFoundError):
            await credential_store.recover_password("nobody@x.io", "Passs@0101")


class TestEmailChange:
    @pytest.mark.asyncio
    async def test_change_email_keeps_verification(self, db, credential_store):
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await credential_store.verify_user(user_id)
        await credential_store.change_email(user_id, "alice@new.io")
        await db.commit()

        assert await credential_store.get_email(user_id) == "alice@new.io"
        assert await credential_store.get_verification_status(user_id) is True
        assert await credential_store.find_user_id_by_email("alice@x.io") is None
        assert await credential_store.find_user_id_by_email("ALICE@new.io") == user_id

    @pytest.mark.asyncio
    async def test_change_to_verified_email_is_busy(self, db, credential_store):
        other = await credential_store.register_user("bob@x.io", PASSWORD)
        await credential_store.verify_user(other)
        user_id = await credential_store.register_user("alice@x.io", PASSWORD)
        await db.commit()

        assert await credential_store.is_email_taken("bob@x.io", exclude_user_id=user_id)
        assert not await credential_store.is_email_taken("bob@x.io", exclude_user_id=other)
        with pytest.raises(ConflictError):
            await credential_store.change_email(user_id, "bob@x.io")
