"""
Security helpers:
- bcrypt password hashing (cost factor from settings)
- JWT signing/verification via PyJWT for access and refresh tokens
- JTI generation for refresh-token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

from newsroom.config import settings
from newsroom.errors import AuthError

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def new_token_id() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _sign(claims: Dict[str, Any], token_type: str, ttl_seconds: int) -> str:
    issued = _now()
    payload = {
        **claims,
        "type": token_type,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def sign_access(payload: Dict[str, Any]) -> str:
    """
    Sign an access token for ``{user_id, role, email}``.

    Lifetime is ``ACCESS_TOKEN_TTL_SECONDS`` (one day by default).
    """
    claims = {
        "user_id": payload["user_id"],
        "role": payload["role"],
        "email": payload["email"],
    }
    return _sign(claims, ACCESS, settings.ACCESS_TOKEN_TTL_SECONDS)


def sign_refresh(payload: Dict[str, Any]) -> str:
    """
    Sign a refresh token for ``{user_id, role, email, jti}``.

    Lifetime is ``REFRESH_TOKEN_TTL_SECONDS`` (seven days by default).  The
    token itself is never stored; only its ``jti`` goes into the ledger.
    """
    claims = {
        "user_id": payload["user_id"],
        "role": payload["role"],
        "email": payload["email"],
        "jti": payload["jti"],
    }
    return _sign(claims, REFRESH, settings.REFRESH_TOKEN_TTL_SECONDS)


def verify(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT.  Raises AuthError on a bad signature,
    a malformed token or an expired one.  The ``type`` claim is left to
    the caller.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")
