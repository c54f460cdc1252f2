"""
Request-scoped dependencies: pagination, caller identity and the
role gate.

Identity
--------
:class:`Identity` is the explicit context value for "who is calling".
:func:`get_current_identity` builds it from the ``access_token`` cookie
and downstream handlers receive it as an argument; nothing is stashed on
the request object.

Authorization
-------------
:func:`require_roles` re-reads the caller's role from the store on every
request.  The role embedded in the access token is only a hint: after an
admin changes a role, an unexpired token still carries the old one.
"""
import logging
from typing import Callable, NamedTuple, Optional

from fastapi import Cookie, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom import security
from newsroom.config import settings
from newsroom.database import get_db
from newsroom.errors import AuthError, ForbiddenError
from newsroom.models import Role, User

logger = logging.getLogger(__name__)


class PaginationParams:
    """
    Reusable dependency parsing ``page`` and ``limit`` query parameters.

    ``limit`` is clamped to ``settings.MAX_PAGE_SIZE`` regardless of the
    value supplied by the caller.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned per page.",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and limit."""
        return (self.page - 1) * self.limit


class Identity(NamedTuple):
    """Authenticated caller, resolved from the access token."""
    user_id: int
    role: Role
    email: str

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.REPORTER, Role.EDITOR, Role.ADMIN)


def _identity_from_token(token: str) -> Identity:
    claims = security.verify(token)
    if claims.get("type") != security.ACCESS:
        raise AuthError("Invalid or expired token")
    try:
        return Identity(
            user_id=int(claims["user_id"]),
            role=Role(claims["role"]),
            email=claims["email"],
        )
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid or expired token")


async def get_current_identity(
    access_token: Optional[str] = Cookie(None),
) -> Identity:
    if not access_token:
        raise AuthError("Authorization token missing")
    try:
        return _identity_from_token(access_token)
    except AuthError:
        raise AuthError("Invalid or expired token")


async def get_optional_identity(
    access_token: Optional[str] = Cookie(None),
) -> Optional[Identity]:
    """Like :func:`get_current_identity` but returns None for guests."""
    if not access_token:
        return None
    try:
        return _identity_from_token(access_token)
    except AuthError:
        return None


def require_roles(*roles: Role) -> Callable:
    """
    Build a dependency that admits only callers whose *stored* role is in
    *roles* and returns their Identity with that fresh role.
    """
    allowed = frozenset(roles)

    async def dependency(
        identity: Identity = Depends(get_current_identity),
        db: AsyncSession = Depends(get_db),
    ) -> Identity:
        user = await db.get(User, identity.user_id)
        if user is None:
            raise AuthError("Unauthorized: user not found")
        if user.role not in allowed:
            logger.info(
                "Role gate denied user_id=%s role=%s (allowed: %s)",
                user.id,
                user.role.value,
                ",".join(sorted(r.value for r in allowed)),
            )
            raise ForbiddenError("Access denied: insufficient permissions")
        return identity._replace(role=user.role, email=user.email)

    return dependency


STAFF_ROLES = (Role.EDITOR, Role.REPORTER, Role.ADMIN)
