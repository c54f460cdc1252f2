"""
User service: account administration for the User aggregate.

Self-service registration lives in :mod:`newsroom.services.auth_service`;
this module backs the admin console: listing, creating accounts with any
role, changing roles and toggling ``is_active``.  :func:`update_role` is
the only code path that changes a user's role.
"""
import logging
import math

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from newsroom import security
from newsroom.errors import ConflictError, NotFoundError
from newsroom.models import Role, User
from newsroom.schemas import AdminUserCreate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict (admin view)."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(
    db: AsyncSession, page: int = 1, limit: int = 10, search: str | None = None
) -> dict:
    """
    Return a page of users ordered by creation date (newest first).

    *search* matches a case-insensitive substring of name or email.
    """
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total: int = (
        await db.execute(select(func.count()).select_from(User).where(*conditions))
    ).scalar_one()

    q = (
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(q)
    return {
        "users": [_user_to_dict(u) for u in result.scalars().all()],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total > 0 else 0,
        },
    }


async def create_user(db: AsyncSession, data: AdminUserCreate) -> dict:
    """
    Create an active account with the requested role.

    Email uniqueness is enforced at the database level as well; a racing
    duplicate surfaces as the same ConflictError.
    """
    existing = await db.execute(select(User.id).where(User.email == data.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=await run_in_threadpool(security.hash_password, data.password),
        role=data.role,
        is_active=True,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("User with this email already exists")
    logger.info("Admin created user_id=%s with role %s", user.id, user.role.value)
    return _user_to_dict(user)


async def update_role(db: AsyncSession, user_id: int, role: Role) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    previous = user.role
    user.role = role
    await db.flush()
    logger.info("Role of user_id=%s changed %s -> %s", user.id, previous.value, role.value)
    return _user_to_dict(user)


async def toggle_active(db: AsyncSession, user_id: int) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    user.is_active = not user.is_active
    await db.flush()
    return _user_to_dict(user)
