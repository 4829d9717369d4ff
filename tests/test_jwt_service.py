"""Tests for JWT service."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from aigateway.config import settings
from aigateway.services.jwt_service import JWTService


@pytest.fixture
def jwt_service():
    return JWTService()


def encode(payload, secret=None):
    return jwt.encode(payload, secret or settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def test_validate_valid_token(jwt_service):
    token = encode(
        {
            "user_id": "test-user-123",
            "tenant_id": "test-tenant-456",
            "roles": ["user", "admin"],
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
    )

    result = jwt_service.validate_token(token)
    assert result is not None
    assert result["user_id"] == "test-user-123"
    assert result["tenant_id"] == "test-tenant-456"


def test_validate_expired_token(jwt_service):
    token = encode(
        {"user_id": "test-user-123", "exp": datetime.now(timezone.utc) - timedelta(hours=1)}
    )
    assert jwt_service.validate_token(token) is None


def test_validate_invalid_token(jwt_service):
    assert jwt_service.validate_token("invalid.token.here") is None


def test_validate_wrong_secret(jwt_service):
    token = encode({"user_id": "test-user-123"}, secret="another-secret")
    assert jwt_service.validate_token(token) is None


def test_token_without_subject_rejected(jwt_service):
    token = encode({"tenant_id": "t-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)})
    assert jwt_service.validate_token(token) is None


def test_sub_claim_accepted(jwt_service):
    token = encode({"sub": "user-456"})
    payload = jwt_service.validate_token(token)
    assert jwt_service.get_user_id(payload) == "user-456"


def test_get_tenant_id(jwt_service):
    assert jwt_service.get_tenant_id({"tenant_id": "tenant-789"}) == "tenant-789"
    assert jwt_service.get_tenant_id({}) is None


def test_get_roles(jwt_service):
    assert jwt_service.get_roles({"roles": ["user", "admin"]}) == ["user", "admin"]
    assert jwt_service.get_roles({"roles": "user"}) == ["user"]
    assert jwt_service.get_roles({"role": "admin"}) == ["admin"]
    assert jwt_service.get_roles({}) == []
