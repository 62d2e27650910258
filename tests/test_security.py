"""
Back Office security tests

Tests:
  1. Access/refresh token issue and validation
  2. Tampered, expired and wrong-type tokens are rejected
  3. bcrypt password hashing
"""
import pytest
from jose import jwt

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import InvalidToken
from backoffice.core.security import REFRESH, TokenService, hash_password, verify_password


# ─── Tokens ────────────────────────────────────────────────────────────────────
def test_access_token_round_trip_carries_subject_and_roles():
    tokens = TokenService()
    identity = tokens.validate(tokens.issue_access_token("jdupont", ["EMPLOYEE", "ADMIN"]))
    assert identity.username == "jdupont"
    assert identity.roles == frozenset({"ADMIN", "EMPLOYEE"})
    assert identity.has_any_role("ADMIN")
    assert not identity.has_any_role("CLIENT")


def test_access_token_claims():
    tokens = TokenService()
    settings = get_settings()
    claims = jwt.decode(
        tokens.issue_access_token("jdupont", ["CLIENT"]),
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
    )
    assert claims["sub"] == "jdupont"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60
    assert claims["jti"]


def test_tampered_token_is_rejected():
    """A token signed with another key must not validate."""
    forged = TokenService(Settings(JWT_SECRET_KEY="someone-else")).issue_access_token("mallory", ["ADMIN"])
    with pytest.raises(InvalidToken):
        TokenService().validate(forged)


def test_garbage_token_is_rejected():
    with pytest.raises(InvalidToken):
        TokenService().validate("not.a.jwt")


def test_expired_token_is_rejected():
    expired = TokenService(Settings(JWT_ACCESS_TOKEN_EXPIRE_MINUTES=-1)).issue_access_token("jdupont", ["CLIENT"])
    with pytest.raises(InvalidToken):
        TokenService().validate(expired)


def test_refresh_token_is_not_an_access_token():
    tokens = TokenService()
    refresh = tokens.issue_refresh_token("jdupont", ["CLIENT"])
    with pytest.raises(InvalidToken):
        tokens.validate(refresh)
    assert tokens.validate(refresh, expected_type=REFRESH).username == "jdupont"


# ─── Passwords ─────────────────────────────────────────────────────────────────
def test_password_hash_verifies_only_the_original():
    hashed = hash_password("Secret123!")
    assert hashed != "Secret123!"
    assert verify_password("Secret123!", hashed)
    assert not verify_password("secret123!", hashed)
