"""
Auth service: registration, login, refresh rotation and logout.

Session chain
-------------
Every successful register/login starts a chain with exactly one live
ledger row (``RefreshToken`` with ``revoked = false``).  A refresh revokes
that row and inserts the next one; logout revokes it.  A ledger row whose
``expires_at`` has passed is treated as revoked on next use.

:func:`issue_tokens` is the only place that inserts ledger rows or
revokes them during rotation.  Revocation is a conditional UPDATE on
``jti + user_id + revoked = false`` and must hit exactly one row, so two
concurrent refreshes with the same token cannot both succeed; the
revoke and the insert share the request transaction owned by ``get_db``.

Service functions flush but do not commit.  Cookies are set by the
router from the returned :class:`TokenPair`.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from newsroom import security
from newsroom.config import settings
from newsroom.errors import AuthError, ConflictError, InvalidCredentialsError, NotFoundError
from newsroom.models import RefreshToken, Role, User
from newsroom.schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    jti: str


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
    }


# ---------------------------------------------------------------------------
# Issue: the single mutation point of the ledger
# ---------------------------------------------------------------------------

async def issue_tokens(
    db: AsyncSession,
    user_id: int,
    role: Role,
    email: str,
    old_jti: str | None = None,
) -> TokenPair:
    """
    Revoke *old_jti* (when given), then sign a fresh access/refresh pair
    and record the new refresh identifier in the ledger.

    Raises AuthError when *old_jti* no longer matches a live row owned by
    *user_id* (already rotated or revoked by a concurrent request).
    """
    if old_jti is not None:
        result = await db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.jti == old_jti,
                RefreshToken.user_id == user_id,
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            raise AuthError("Refresh token revoked/expired")

    jti = security.new_token_id()
    claims = {"user_id": user_id, "role": role.value, "email": email}
    access_token = security.sign_access(claims)
    refresh_token = security.sign_refresh({**claims, "jti": jti})

    db.add(
        RefreshToken(
            jti=jti,
            user_id=user_id,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=settings.REFRESH_TOKEN_TTL_SECONDS),
            revoked=False,
        )
    )
    await db.flush()
    return TokenPair(access_token=access_token, refresh_token=refresh_token, jti=jti)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: RegisterRequest) -> tuple[dict, TokenPair]:
    """
    Create a USER account and open its first session chain.

    Email uniqueness is checked up front and enforced again by the unique
    constraint, so a concurrent duplicate still ends as ConflictError.
    """
    existing = await db.execute(select(User.id).where(User.email == data.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email already exists", status_code=400)

    password_hash = await run_in_threadpool(security.hash_password, data.password)
    user = User(
        name=data.name,
        email=data.email,
        password_hash=password_hash,
        role=Role.USER,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("Email already exists", status_code=400)

    tokens = await issue_tokens(db, user.id, user.role, user.email)
    logger.info("Registered user_id=%s", user.id)
    return user_to_dict(user), tokens


async def login(db: AsyncSession, data: LoginRequest) -> tuple[dict, TokenPair]:
    """
    Verify credentials and open a new session chain.

    Unknown email and wrong password raise the same error.  Other live
    chains of the same user are left untouched.
    """
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidCredentialsError("Invalid credentials")

    matches = await run_in_threadpool(security.verify_password, data.password, user.password_hash)
    if not matches:
        raise InvalidCredentialsError("Invalid credentials")

    tokens = await issue_tokens(db, user.id, user.role, user.email)
    logger.info("Login user_id=%s", user.id)
    return user_to_dict(user), tokens


async def refresh(db: AsyncSession, refresh_token: str | None) -> TokenPair:
    """
    Rotate a refresh token.

    The token must verify, carry ``type == "refresh"``, and point at a
    ledger row that exists, is not revoked, belongs to the claimed user
    and has not expired.  Role and email for the new pair are read from
    the store, not from the old claims.
    """
    if not refresh_token:
        raise AuthError("No refresh token")

    try:
        claims = security.verify(refresh_token)
    except AuthError:
        raise AuthError("Invalid or expired refresh token")
    if claims.get("type") != security.REFRESH:
        raise AuthError("Invalid refresh token")

    jti = claims.get("jti")
    claimed_user_id = claims.get("user_id")
    record = None
    if jti:
        result = await db.execute(select(RefreshToken).where(RefreshToken.jti == jti))
        record = result.scalar_one_or_none()

    if (
        record is None
        or record.revoked
        or record.user_id != claimed_user_id
        or _as_utc(record.expires_at) < datetime.now(timezone.utc)
    ):
        logger.info("Refresh rejected for jti=%s", jti)
        raise AuthError("Refresh token revoked/expired")

    user = await db.get(User, record.user_id)
    if user is None:
        raise AuthError("User not found")

    tokens = await issue_tokens(db, user.id, user.role, user.email, old_jti=jti)
    logger.info("Rotated refresh token for user_id=%s", user.id)
    return tokens


async def logout(db: AsyncSession, refresh_token: str | None) -> None:
    """
    Revoke the ledger row behind *refresh_token*, if there is one.

    Missing, malformed or expired tokens are ignored so that logout always
    succeeds; the router clears the cookies regardless.
    """
    if not refresh_token:
        return
    try:
        claims = security.verify(refresh_token)
    except AuthError as exc:
        logger.debug("Ignoring unusable refresh token on logout: %s", exc.message)
        return

    jti = claims.get("jti")
    user_id = claims.get("user_id")
    if not jti or user_id is None:
        return

    await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.jti == jti,
            RefreshToken.user_id == user_id,
            RefreshToken.revoked.is_(False),
        )
        .values(revoked=True)
        .execution_options(synchronize_session="evaluate")
    )
    logger.info("Logout user_id=%s", user_id)


async def get_profile(db: AsyncSession, user_id: int) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    data = user_to_dict(user)
    data["created_at"] = user.created_at.isoformat() if user.created_at else None
    return data
