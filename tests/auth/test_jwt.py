"""Tests for JWT token management."""

import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from jwt.utils import base64url_encode

from roadbook.auth.jwt import create_access_token, create_refresh_token, verify_token
from roadbook.config import get_settings


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(user_id=1, role="APPRENTICE")
        payload = verify_token(token, expected_type="access")
        assert payload["sub"] == "1"
        assert payload["userId"] == 1
        assert payload["role"] == "APPRENTICE"
        assert payload["type"] == "access"
        assert payload["iss"] == "roadbook"

    def test_lifetime_is_fifteen_minutes(self):
        token = create_access_token(user_id=1, role="GUIDE")
        payload = verify_token(token)
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_refresh_token_rejected_as_access(self):
        token = create_refresh_token(user_id=1, role="APPRENTICE", token_id="test-id")
        # Signed with the refresh secret, so the signature check fails first.
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="access")

    def test_expired_token_raises_expired(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "1",
                "userId": 1,
                "role": "APPRENTICE",
                "iat": now - timedelta(hours=1),
                "exp": now - timedelta(minutes=1),
                "iss": settings.jwt_issuer,
                "type": "access",
            },
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            verify_token(token)

    def test_wrong_type_claim_rejected(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "1",
                "userId": 1,
                "role": "APPRENTICE",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "iss": settings.jwt_issuer,
                "type": "refresh",
            },
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token, expected_type="access")

    def test_tampered_token_rejected(self):
        token = create_access_token(user_id=1, role="APPRENTICE")
        header, _payload, signature = token.split(".")
        forged_payload = base64url_encode(
            json.dumps({"sub": "1", "userId": 1, "role": "ADMIN", "type": "access"}).encode()
        ).decode()
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(f"{header}.{forged_payload}.{signature}")


class TestRefreshToken:
    def test_create_includes_jti(self):
        token = create_refresh_token(user_id=1, role="INSTRUCTOR", token_id="abc-123")
        payload = verify_token(token, expected_type="refresh")
        assert payload["jti"] == "abc-123"
        assert payload["type"] == "refresh"
        assert payload["role"] == "INSTRUCTOR"

    def test_lifetime_is_seven_days(self):
        token = create_refresh_token(user_id=1, role="APPRENTICE", token_id="x")
        payload = verify_token(token, expected_type="refresh")
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_access_token_rejected_as_refresh(self):
        token = create_access_token(user_id=1, role="APPRENTICE")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="refresh")
