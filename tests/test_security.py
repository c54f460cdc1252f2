"""Token service and password hashing."""
import time

import jwt
import pytest

from newsroom import security
from newsroom.config import settings
from newsroom.errors import AuthError

CLAIMS = {"user_id": 7, "role": "EDITOR", "email": "ed@example.com"}


def test_sign_access_embeds_type_and_one_day_expiry():
    claims = security.verify(security.sign_access(CLAIMS))
    assert claims["type"] == security.ACCESS
    assert claims["user_id"] == 7
    assert claims["role"] == "EDITOR"
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_sign_refresh_embeds_jti_and_seven_day_expiry():
    claims = security.verify(security.sign_refresh({**CLAIMS, "jti": "abc"}))
    assert claims["type"] == security.REFRESH
    assert claims["jti"] == "abc"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60


def test_sign_access_ignores_extra_claims():
    claims = security.verify(security.sign_access({**CLAIMS, "jti": "ignored", "type": "refresh"}))
    assert "jti" not in claims
    assert claims["type"] == security.ACCESS


def test_verify_rejects_expired_token():
    now = int(time.time())
    token = jwt.encode(
        {**CLAIMS, "type": "access", "iat": now - 100, "exp": now - 10},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(AuthError, match="Token expired"):
        security.verify(token)


def test_verify_rejects_tampered_token():
    token = security.sign_access(CLAIMS)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])
    with pytest.raises(AuthError, match="Invalid token"):
        security.verify(tampered)


def test_verify_rejects_other_secret():
    token = jwt.encode(
        {**CLAIMS, "type": "access"},
        "a-completely-different-secret-value-0123456789",
        algorithm="HS256",
    )
    with pytest.raises(AuthError):
        security.verify(token)


def test_new_token_id_is_unique():
    ids = {security.new_token_id() for _ in range(1000)}
    assert len(ids) == 1000


def test_password_hash_round_trip():
    hashed = security.hash_password("secret123")
    assert hashed != "secret123"
    assert security.verify_password("secret123", hashed)
    assert not security.verify_password("secret124", hashed)


def test_password_hash_is_salted():
    assert security.hash_password("secret123") != security.hash_password("secret123")


def test_verify_password_with_malformed_hash():
    assert security.verify_password("secret123", "not-a-bcrypt-hash") is False
