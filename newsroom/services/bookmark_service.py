"""
Bookmark service: a user's saved articles.

A user bookmarks an article at most once (unique ``user_id + article_id``).
Adding an existing bookmark is not an error; the caller is told it was
already there.
"""
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from newsroom.errors import NotFoundError
from newsroom.models import Article, Bookmark


def _bookmark_to_dict(bookmark: Bookmark) -> dict:
    return {
        "id": bookmark.id,
        "user_id": bookmark.user_id,
        "article_id": bookmark.article_id,
        "created_at": bookmark.created_at.isoformat() if bookmark.created_at else None,
    }


def _bookmarked_article_to_dict(article: Article | None) -> dict | None:
    if article is None:
        return None
    return {
        "id": article.id,
        "title": article.title,
        "slug": article.slug,
        "excerpt": article.excerpt,
        "cover_image": article.cover_image,
        "status": article.status.value,
        "created_at": article.created_at.isoformat() if article.created_at else None,
    }


async def _find(db: AsyncSession, user_id: int, article_id: int) -> Bookmark | None:
    result = await db.execute(
        select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.article_id == article_id)
    )
    return result.scalar_one_or_none()


async def add_bookmark(db: AsyncSession, user_id: int, article_id: int) -> tuple[dict, bool]:
    """
    Bookmark *article_id* for *user_id*.

    Returns ``(bookmark, created)``; ``created`` is False when the
    bookmark already existed.
    """
    existing = await _find(db, user_id, article_id)
    if existing is not None:
        return _bookmark_to_dict(existing), False

    if await db.get(Article, article_id) is None:
        raise NotFoundError("Article not found")

    bookmark = Bookmark(user_id=user_id, article_id=article_id)
    db.add(bookmark)
    await db.flush()
    return _bookmark_to_dict(bookmark), True


async def remove_bookmark(db: AsyncSession, user_id: int, article_id: int) -> None:
    result = await db.execute(
        delete(Bookmark)
        .where(Bookmark.user_id == user_id, Bookmark.article_id == article_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Bookmark not found")


async def get_bookmark(db: AsyncSession, user_id: int, article_id: int) -> dict:
    bookmark = await _find(db, user_id, article_id)
    if bookmark is None:
        raise NotFoundError("Bookmark not found")
    return _bookmark_to_dict(bookmark)


async def list_bookmarks(db: AsyncSession, user_id: int) -> dict:
    """Return every bookmark of *user_id*, newest first, with its article."""
    q = (
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .options(selectinload(Bookmark.article))
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
    )
    bookmarks = (await db.execute(q)).scalars().all()
    count: int = (
        await db.execute(
            select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user_id)
        )
    ).scalar_one()

    items = []
    for bookmark in bookmarks:
        data = _bookmark_to_dict(bookmark)
        data["article"] = _bookmarked_article_to_dict(bookmark.article)
        items.append(data)
    return {"bookmarks": items, "bookmark_count": count}
