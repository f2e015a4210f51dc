"""Tests for the auth service: login, refresh, revocation, registration."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from roadbook.auth.jwt import create_refresh_token, verify_token
from roadbook.auth.service import (
    hash_token,
    login,
    refresh_access_token,
    register_user,
    revoke_all_tokens,
    revoke_refresh_token,
)
from roadbook.db.enums import RefreshTokenStatus
from roadbook.db.models import RefreshToken
from roadbook.errors import (
    ConflictError,
    InvalidCredentials,
    InvalidOrExpiredToken,
    RevokedOrUnknownToken,
    ValidationError,
)
from tests.conftest import TEST_PASSWORD, create_user


async def _tokens(db, user_id: int) -> list[RefreshToken]:
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.user_id == user_id).order_by(RefreshToken.issued_at)
    )
    return list(result.scalars().all())


class TestLogin:
    async def test_login_issues_token_pair(self, db_session):
        user = await create_user(db_session)

        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        assert result.user.id == user.id
        access = verify_token(result.access_token, expected_type="access")
        refresh = verify_token(result.refresh_token, expected_type="refresh")
        assert access["userId"] == user.id
        assert access["role"] == "APPRENTICE"

        tokens = await _tokens(db_session, user.id)
        assert len(tokens) == 1
        assert tokens[0].id == refresh["jti"]
        assert tokens[0].status == RefreshTokenStatus.ACTIVE.value
        assert tokens[0].token_hash == hash_token(result.refresh_token)
        assert result.user.last_login is not None

    async def test_email_is_case_insensitive(self, db_session):
        await create_user(db_session)
        result = await login(db_session, "Apprentice@Example.COM", TEST_PASSWORD)
        assert result.access_token

    async def test_wrong_password(self, db_session):
        await create_user(db_session)
        with pytest.raises(InvalidCredentials, match="Invalid credentials"):
            await login(db_session, "apprentice@example.com", "WrongPass1")

    async def test_unknown_email_gives_same_error(self, db_session):
        with pytest.raises(InvalidCredentials, match="Invalid credentials"):
            await login(db_session, "nobody@example.com", TEST_PASSWORD)

    async def test_second_login_revokes_first_refresh_token(self, db_session):
        user = await create_user(db_session)

        first = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()
        second = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        tokens = await _tokens(db_session, user.id)
        statuses = {t.id: t.status for t in tokens}
        first_jti = verify_token(first.refresh_token, "refresh")["jti"]
        second_jti = verify_token(second.refresh_token, "refresh")["jti"]
        assert statuses[first_jti] == RefreshTokenStatus.REVOKED.value
        assert statuses[second_jti] == RefreshTokenStatus.ACTIVE.value
        assert sum(1 for s in statuses.values() if s == RefreshTokenStatus.ACTIVE.value) == 1

        with pytest.raises(RevokedOrUnknownToken):
            await refresh_access_token(db_session, first.refresh_token)
        assert await refresh_access_token(db_session, second.refresh_token)


class TestRefresh:
    async def test_refresh_returns_new_access_token(self, db_session):
        user = await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        access = await refresh_access_token(db_session, result.refresh_token)
        payload = verify_token(access, expected_type="access")
        assert payload["userId"] == user.id
        assert payload["role"] == "APPRENTICE"

    async def test_refresh_does_not_rotate(self, db_session):
        await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        await refresh_access_token(db_session, result.refresh_token)
        # The same refresh token keeps working.
        assert await refresh_access_token(db_session, result.refresh_token)

    async def test_tampered_refresh_token(self, db_session):
        await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        header, payload, signature = result.refresh_token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"
        with pytest.raises(InvalidOrExpiredToken):
            await refresh_access_token(db_session, tampered)

    async def test_access_token_is_not_a_refresh_token(self, db_session):
        await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        with pytest.raises(InvalidOrExpiredToken):
            await refresh_access_token(db_session, result.access_token)

    async def test_validly_signed_but_unknown_token(self, db_session):
        user = await create_user(db_session)
        stray = create_refresh_token(user.id, user.role, token_id="never-stored")
        with pytest.raises(RevokedOrUnknownToken):
            await refresh_access_token(db_session, stray)


class TestRevocation:
    async def test_revoke_refresh_token(self, db_session):
        user = await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        assert await revoke_refresh_token(db_session, result.refresh_token) is True
        await db_session.commit()

        tokens = await _tokens(db_session, user.id)
        assert tokens[0].status == RefreshTokenStatus.REVOKED.value
        assert tokens[0].revoked_at is not None
        with pytest.raises(RevokedOrUnknownToken):
            await refresh_access_token(db_session, result.refresh_token)

    async def test_revoke_is_idempotent(self, db_session):
        await create_user(db_session)
        result = await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        assert await revoke_refresh_token(db_session, result.refresh_token) is True
        assert await revoke_refresh_token(db_session, result.refresh_token) is False

    async def test_revoke_garbage_token(self, db_session):
        assert await revoke_refresh_token(db_session, "not-a-jwt") is False

    async def test_revoke_all_tokens(self, db_session):
        user = await create_user(db_session)
        await login(db_session, "apprentice@example.com", TEST_PASSWORD)
        await db_session.commit()

        assert await revoke_all_tokens(db_session, user.id) == 1
        assert await revoke_all_tokens(db_session, user.id) == 0


class TestRegister:
    async def test_register_creates_user(self, db_session):
        user = await register_user(db_session, "new@example.com", "Password123", "New Driver")
        await db_session.commit()

        assert user.id is not None
        assert user.role == "APPRENTICE"
        assert user.password_hash != "Password123"

    async def test_register_with_role(self, db_session):
        user = await register_user(db_session, "guide@example.com", "Password123", "Guide", role="GUIDE")
        assert user.role == "GUIDE"

    async def test_duplicate_email(self, db_session):
        await register_user(db_session, "dup@example.com", "Password123", "First")
        await db_session.commit()

        with pytest.raises(ConflictError, match="already exists"):
            await register_user(db_session, "dup@example.com", "Password123", "Second")

    async def test_weak_password(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await register_user(db_session, "weak@example.com", "password", "Weak")
        assert exc_info.value.errors[0]["field"] == "password"
