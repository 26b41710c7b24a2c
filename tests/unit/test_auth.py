"""
Unit tests for bearer token handling.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from jose import jwt

from equiptrack.config import settings
from equiptrack.dependencies import create_access_token, verify_token
from equiptrack.schemas.enums import UserRole


class TestTokens:
    """Test cases for create_access_token and verify_token."""

    def test_round_trip(self):
        token = create_access_token({"sub": "rina@example.com", "user_id": "u-1", "role": "ADMIN"})
        payload = verify_token(token)

        assert payload.user_id == "u-1"
        assert payload.username == "rina@example.com"
        assert payload.role == UserRole.ADMIN
        assert payload.is_admin
        assert payload.jti

    def test_role_defaults_to_user(self):
        token = create_access_token({"sub": "rina@example.com", "user_id": "u-1"})
        payload = verify_token(token)

        assert payload.role == UserRole.USER
        assert not payload.is_admin

    def test_expired_token_rejected(self):
        token = create_access_token(
            {"sub": "rina@example.com", "user_id": "u-1"},
            expires_delta=timedelta(seconds=-5),
        )
        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token expired"

    def test_missing_claims_rejected(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "rina@example.com", "exp": exp}, settings.jwt_secret_key, algorithm="HS256")

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.status_code == 401
        assert "missing required claims" in exc_info.value.detail

    def test_wrong_secret_rejected(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode(
            {"sub": "x", "user_id": "u-1", "jti": "j", "exp": exp},
            "another-secret-another-secret-another-secret",
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.detail == "Invalid token"

    def test_unknown_role_rejected(self):
        token = create_access_token({"sub": "x", "user_id": "u-1", "role": "ROOT"})
        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.status_code == 401
