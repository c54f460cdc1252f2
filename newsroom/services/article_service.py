"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Soft delete: ``deleted_at`` is set instead of removing the row.  Public
  reads never return soft-deleted articles; admin reads do.
- Visibility: guests and USER accounts only ever see PUBLISHED articles.
  Staff (REPORTER, EDITOR, ADMIN) see every status and may filter by it.
- Ownership: ADMIN and EDITOR may edit or delete any article, a REPORTER
  only their own.  Permanent deletion is ADMIN only.
- Eager loading via ``joinedload`` (many-to-one: author, category) and
  ``selectinload`` (collections: tags, videos) keeps each read to a fixed
  number of queries; relationships are ``noload`` by default.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
import math
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from newsroom.dependencies import Identity
from newsroom.errors import ForbiddenError, NotFoundError, ValidationError
from newsroom.models import (
    Article,
    ArticleStatus,
    ArticleVideo,
    Bookmark,
    Category,
    Role,
    Tag,
    User,
)
from newsroom.schemas import ArticleCreate, ArticleUpdate
from newsroom.services.slugs import identifier_clause, pick_identified, unique_slug

logger = logging.getLogger(__name__)


def _start_of_today() -> datetime:
    return datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _is_public_viewer(identity: Identity | None) -> bool:
    return identity is None or identity.role == Role.USER


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_author(author: User | None, with_email: bool = False) -> dict | None:
    if author is None:
        return None
    data = {"id": author.id, "name": author.name}
    if with_email:
        data["email"] = author.email
    return data


def _serialize_category(category: Category | None) -> dict | None:
    if category is None:
        return None
    return {"id": category.id, "name": category.name, "slug": category.slug}


def _article_to_dict(article: Article, with_email: bool = False) -> dict:
    """Serialise an Article ORM instance to a plain dict (list view)."""
    return {
        "id": article.id,
        "title": article.title,
        "slug": article.slug,
        "excerpt": article.excerpt,
        "cover_image": article.cover_image,
        "status": article.status.value,
        "meta_title": article.meta_title,
        "meta_description": article.meta_description,
        "author_id": article.author_id,
        "author": _serialize_author(article.author, with_email),
        "category": _serialize_category(article.category),
        "created_at": _iso(article.created_at),
        "updated_at": _iso(article.updated_at),
        "deleted_at": _iso(article.deleted_at),
    }


def _article_detail_to_dict(article: Article, with_email: bool = False) -> dict:
    """Serialise an Article ORM instance to a plain dict (detail view)."""
    data = _article_to_dict(article, with_email)
    data["content"] = article.content
    data["tags"] = [t.name for t in article.tags]
    data["videos"] = [
        {
            "id": v.id,
            "type": v.type.value,
            "url": v.url,
            "title": v.title,
            "description": v.description,
        }
        for v in article.videos
    ]
    return data


def _detail_options():
    return (
        joinedload(Article.author),
        joinedload(Article.category),
        selectinload(Article.tags),
        selectinload(Article.videos),
    )


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------

async def _find_article(db: AsyncSession, slug_or_id: str, detail: bool = True) -> Article | None:
    q = select(Article).where(identifier_clause(Article, slug_or_id))
    if detail:
        q = q.options(*_detail_options())
    result = await db.execute(q)
    return pick_identified(result.unique().scalars().all(), slug_or_id)


async def _load_article(db: AsyncSession, article_id: int) -> Article:
    q = (
        select(Article)
        .where(Article.id == article_id)
        .options(*_detail_options())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one()


async def _resolve_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag ORM instances for each distinct name in *tag_names*,
    creating any that do not yet exist.
    """
    tags: list[Tag] = []
    for name in dict.fromkeys(tag_names):
        result = await db.execute(select(Tag).where(Tag.name == name))
        tag = result.scalar_one_or_none()
        if not tag:
            tag = Tag(name=name)
            db.add(tag)
            await db.flush()
        tags.append(tag)
    return tags


def _build_videos(videos) -> list[ArticleVideo]:
    return [
        ArticleVideo(
            type=v.type,
            url=str(v.url),
            title=v.title or None,
            description=v.description or None,
        )
        for v in videos
    ]


async def _ensure_category(db: AsyncSession, category_id: int | None) -> None:
    if category_id is None:
        return
    if await db.get(Category, category_id) is None:
        raise ValidationError("Category not found")


def _can_modify(identity: Identity, article: Article) -> bool:
    if identity.role in (Role.ADMIN, Role.EDITOR):
        return True
    return identity.role == Role.REPORTER and article.author_id == identity.user_id


async def _category_filter_ids(db: AsyncSession, category: str) -> list[int]:
    """
    Ids of categories whose slug equals *category* or whose name contains
    it, plus the ids of their direct children.
    """
    matched = await db.execute(
        select(Category.id).where(
            or_(Category.slug == category, Category.name.ilike(f"%{category}%"))
        )
    )
    ids = set(matched.scalars().all())
    if not ids:
        return []
    children = await db.execute(select(Category.id).where(Category.parent_id.in_(ids)))
    ids.update(children.scalars().all())
    return sorted(ids)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    identity: Identity | None,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    category: str | None = None,
    author: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    status: ArticleStatus | None = None,
) -> dict:
    """
    Return a filtered, paginated page of non-deleted articles, newest first.

    Authenticated callers also get ``is_bookmarked`` on every item.  The
    dashboard counters (``updated_today_count``, ``draft_count``) are only
    filled in for staff.
    """
    conditions = [Article.deleted_at.is_(None)]

    if _is_public_viewer(identity):
        conditions.append(Article.status == ArticleStatus.PUBLISHED)
    elif status is not None:
        conditions.append(Article.status == status)

    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Article.title.ilike(pattern), Article.content.ilike(pattern)))

    if category:
        category_ids = await _category_filter_ids(db, category)
        if category_ids:
            conditions.append(Article.category_id.in_(category_ids))
        else:
            conditions.append(Article.category.has(Category.name.ilike(f"%{category}%")))

    if author:
        conditions.append(Article.author.has(User.name.ilike(f"%{author}%")))

    if start_date:
        conditions.append(Article.created_at >= start_date)
    if end_date:
        conditions.append(Article.created_at <= end_date)

    total: int = (
        await db.execute(select(func.count()).select_from(Article).where(*conditions))
    ).scalar_one()

    articles_q = (
        select(Article)
        .where(*conditions)
        .options(joinedload(Article.author), joinedload(Article.category))
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    articles = (await db.execute(articles_q)).unique().scalars().all()
    items = [_article_to_dict(a) for a in articles]

    if identity is not None and items:
        bookmarked = await db.execute(
            select(Bookmark.article_id).where(
                Bookmark.user_id == identity.user_id,
                Bookmark.article_id.in_([a.id for a in articles]),
            )
        )
        bookmarked_ids = set(bookmarked.scalars().all())
        for item in items:
            item["is_bookmarked"] = item["id"] in bookmarked_ids

    updated_today_count = None
    draft_count = None
    if identity is not None and identity.is_staff:
        updated_today_count = (
            await db.execute(
                select(func.count())
                .select_from(Article)
                .where(Article.deleted_at.is_(None), Article.updated_at >= _start_of_today())
            )
        ).scalar_one()
        draft_count = (
            await db.execute(
                select(func.count())
                .select_from(Article)
                .where(Article.deleted_at.is_(None), Article.status == ArticleStatus.DRAFT)
            )
        ).scalar_one()

    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total > 0 else 0,
        },
        "updated_today_count": updated_today_count,
        "draft_count": draft_count,
    }


async def get_article(db: AsyncSession, slug_or_id: str, identity: Identity | None) -> dict:
    """
    Return the detail dict for *slug_or_id*.

    Missing, soft-deleted, and (for guests and USER accounts) unpublished
    articles all raise NotFoundError.
    """
    article = await _find_article(db, slug_or_id)
    if (
        article is None
        or article.deleted_at is not None
        or (_is_public_viewer(identity) and article.status != ArticleStatus.PUBLISHED)
    ):
        raise NotFoundError("Article not found")
    return _article_detail_to_dict(article)


async def get_adjacent(db: AsyncSession, slug: str) -> dict:
    """Return the next (newer) and previous (older) published articles."""
    result = await db.execute(select(Article).where(Article.slug == slug))
    current = result.scalar_one_or_none()
    if current is None:
        raise NotFoundError("Article not found")

    visible = (Article.status == ArticleStatus.PUBLISHED, Article.deleted_at.is_(None))
    next_q = (
        select(Article.title, Article.slug)
        .where(Article.created_at > current.created_at, *visible)
        .order_by(Article.created_at.asc())
        .limit(1)
    )
    prev_q = (
        select(Article.title, Article.slug)
        .where(Article.created_at < current.created_at, *visible)
        .order_by(Article.created_at.desc())
        .limit(1)
    )
    next_row = (await db.execute(next_q)).first()
    prev_row = (await db.execute(prev_q)).first()
    return {
        "next": {"title": next_row.title, "slug": next_row.slug} if next_row else None,
        "prev": {"title": prev_row.title, "slug": prev_row.slug} if prev_row else None,
    }


async def get_article_for_editing(db: AsyncSession, slug_or_id: str, identity: Identity) -> dict:
    """
    Return any non-deleted article to ADMIN/EDITOR; a REPORTER only gets
    their own.
    """
    article = await _find_article(db, slug_or_id)
    if article is None or article.deleted_at is not None:
        raise NotFoundError("Article not found")
    if identity.role in (Role.ADMIN, Role.EDITOR):
        return _article_detail_to_dict(article, with_email=True)
    if identity.role == Role.REPORTER:
        if article.author_id == identity.user_id:
            return _article_detail_to_dict(article, with_email=True)
        raise ForbiddenError("Access denied: You can only view your own articles")
    raise ForbiddenError("Access denied: Insufficient permissions")


async def create_article(db: AsyncSession, data: ArticleCreate, identity: Identity) -> dict:
    """
    Create a DRAFT article authored by the caller and return its detail dict.

    Meta fields fall back to the first 60 characters of the title and the
    first 160 of the content.
    """
    await _ensure_category(db, data.category_id)

    article = Article(
        title=data.title,
        slug=await unique_slug(db, Article, data.title),
        content=data.content,
        excerpt=data.excerpt or None,
        cover_image=str(data.cover_image) if data.cover_image else None,
        meta_title=data.meta_title or data.title[:60],
        meta_description=data.meta_description or data.content[:160],
        status=ArticleStatus.DRAFT,
        author_id=identity.user_id,
        category_id=data.category_id,
    )
    if data.tags:
        article.tags.extend(await _resolve_tags(db, data.tags))
    if data.videos:
        article.videos.extend(_build_videos(data.videos))

    db.add(article)
    await db.flush()
    logger.info("Article %s created by user_id=%s", article.id, identity.user_id)

    return _article_detail_to_dict(await _load_article(db, article.id))


async def update_article(
    db: AsyncSession, slug_or_id: str, data: ArticleUpdate, identity: Identity
) -> dict:
    """
    Partially update an article and return its detail dict.

    Only fields explicitly present in the payload change.  A new title
    regenerates the slug; ``tags`` and ``videos`` replace the existing
    collections when supplied.
    """
    article = await _find_article(db, slug_or_id)
    if article is None:
        raise NotFoundError("Article not found")
    if not _can_modify(identity, article):
        raise ForbiddenError("You are not authorized to update this article")

    update_data = data.model_dump(exclude_unset=True)
    tags_data = update_data.pop("tags", None)
    update_data.pop("videos", None)

    if "category_id" in update_data:
        await _ensure_category(db, update_data["category_id"])

    if update_data.get("title") is not None and update_data["title"] != article.title:
        article.slug = await unique_slug(db, Article, update_data["title"], exclude_id=article.id)

    if "cover_image" in update_data:
        update_data["cover_image"] = str(data.cover_image) if data.cover_image else None

    for field, value in update_data.items():
        if value is None and field in ("title", "content"):
            continue
        setattr(article, field, value)

    if tags_data is not None:
        article.tags.clear()
        article.tags.extend(await _resolve_tags(db, tags_data))

    if data.videos is not None:
        article.videos.clear()
        article.videos.extend(_build_videos(data.videos))

    await db.flush()
    return _article_detail_to_dict(await _load_article(db, article.id))


async def delete_article(
    db: AsyncSession, slug_or_id: str, identity: Identity, force: bool = False
) -> dict:
    """
    Soft-delete an article, or remove it permanently when *force* is set
    (ADMIN only).  Soft-deleting twice is a ValidationError.
    """
    article = await _find_article(db, slug_or_id, detail=False)
    if article is None:
        raise NotFoundError("Article not found")
    if not _can_modify(identity, article):
        raise ForbiddenError("You are not authorized to delete this article")

    if force:
        if identity.role != Role.ADMIN:
            raise ForbiddenError("Only admins can force delete")
        await db.delete(article)
        await db.flush()
        logger.info("Article %s permanently deleted by user_id=%s", article.id, identity.user_id)
        return {"message": "Article permanently deleted"}

    if article.deleted_at is not None:
        raise ValidationError("Article is already soft deleted")
    article.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Article %s soft deleted by user_id=%s", article.id, identity.user_id)
    return {"message": "Article soft deleted", "article": _article_to_dict(article)}


async def restore_article(db: AsyncSession, slug_or_id: str) -> dict:
    article = await _find_article(db, slug_or_id, detail=False)
    if article is None:
        raise NotFoundError("Article not found")
    if article.deleted_at is None:
        raise ValidationError("Article is not deleted")
    article.deleted_at = None
    await db.flush()
    return {
        "message": "Article restored successfully",
        "article": _article_to_dict(article),
    }


async def update_status(db: AsyncSession, article_id: int, status: ArticleStatus) -> dict:
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article not found")
    article.status = status
    await db.flush()
    return _article_detail_to_dict(await _load_article(db, article.id), with_email=True)


# ---------------------------------------------------------------------------
# Admin views: include soft-deleted articles
# ---------------------------------------------------------------------------

async def admin_list_articles(
    db: AsyncSession, page: int = 1, limit: int = 10, search: str | None = None
) -> dict:
    conditions = []
    if search:
        conditions.append(Article.title.ilike(f"%{search}%"))

    total: int = (
        await db.execute(select(func.count()).select_from(Article).where(*conditions))
    ).scalar_one()
    published_today_count: int = (
        await db.execute(
            select(func.count())
            .select_from(Article)
            .where(
                Article.status == ArticleStatus.PUBLISHED,
                Article.updated_at >= _start_of_today(),
            )
        )
    ).scalar_one()

    q = (
        select(Article)
        .where(*conditions)
        .options(joinedload(Article.author), joinedload(Article.category))
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    articles = (await db.execute(q)).unique().scalars().all()
    return {
        "articles": [_article_to_dict(a, with_email=True) for a in articles],
        "total": total,
        "published_today_count": published_today_count,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total > 0 else 0,
    }


async def admin_get_article(db: AsyncSession, slug_or_id: str) -> dict:
    article = await _find_article(db, slug_or_id)
    if article is None:
        raise NotFoundError("Article not found")
    return _article_detail_to_dict(article, with_email=True)


async def admin_delete_article(db: AsyncSession, article_id: int) -> None:
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article not found")
    await db.delete(article)
    await db.flush()


async def purge_deleted_articles(db: AsyncSession, older_than: datetime) -> int:
    """Permanently remove articles soft-deleted before *older_than*."""
    result = await db.execute(
        delete(Article)
        .where(Article.deleted_at.is_not(None), Article.deleted_at < older_than)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
