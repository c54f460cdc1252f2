import re
import time

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

_SLUG_INVALID_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    return _SLUG_INVALID_RE.sub("-", text.lower()).strip("-")


async def unique_slug(db: AsyncSession, model, text: str, exclude_id: int | None = None) -> str:
    """
    Slugify *text* and, when another row of *model* already owns that slug,
    append a millisecond timestamp suffix.
    """
    slug = slugify(text) or "untitled"
    result = await db.execute(select(model.id).where(model.slug == slug))
    owner_id = result.scalar_one_or_none()
    if owner_id is not None and owner_id != exclude_id:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


def identifier_clause(model, slug_or_id: str):
    """
    WHERE clause matching *slug_or_id* against the slug, and also against
    the primary key when the identifier is all digits.
    """
    if slug_or_id.isdigit():
        return or_(model.id == int(slug_or_id), model.slug == slug_or_id)
    return model.slug == slug_or_id


def pick_identified(rows, slug_or_id: str):
    """From the rows matched by :func:`identifier_clause`, prefer the id match."""
    rows = list(rows)
    if slug_or_id.isdigit():
        for row in rows:
            if row.id == int(slug_or_id):
                return row
    return rows[0] if rows else None
