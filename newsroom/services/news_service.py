"""
News service: headlines pulled from third-party providers and kept in
the ``latest_news`` table.

Two providers are used: NewsData.io for the general "latest" feed and
TheNewsAPI for per-category feeds.  Every stored row is keyed by the
provider's own article id, so ingesting the same feed twice updates rows
in place instead of duplicating them.  Reads only ever hit the local
table.
"""
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.config import settings
from newsroom.errors import InternalError
from newsroom.models import LatestNews

logger = logging.getLogger(__name__)

NEWS_CATEGORIES = (
    "business",
    "sports",
    "tech",
    "science",
    "health",
    "entertainment",
    "fashion",
    "general",
)


def _news_to_dict(item: LatestNews) -> dict:
    return {
        "id": item.id,
        "title": item.title,
        "photo_url": item.photo_url,
        "link": item.link,
        "description": item.description,
        "type": item.type,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


async def _get_json(client: httpx.AsyncClient, url: str, params: dict) -> dict:
    try:
        response = await client.get(url, params=params, timeout=settings.HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        # Never log params: they carry the provider API key.
        logger.error("News provider request to %s failed: %s", url, exc)
        raise InternalError("Failed to fetch news from provider")


async def upsert_news(
    db: AsyncSession,
    news_id: str,
    title: str,
    photo_url: str | None,
    link: str | None,
    description: str | None,
    news_type: str | None = None,
) -> LatestNews:
    """Insert the row for *news_id*, or overwrite its fields when present."""
    item = await db.get(LatestNews, news_id)
    if item is None:
        item = LatestNews(id=news_id)
        db.add(item)
    item.title = title
    item.photo_url = photo_url or None
    item.link = link or None
    item.description = description or None
    if news_type is not None:
        item.type = news_type
    await db.flush()
    return item


async def fetch_latest_news(db: AsyncSession, client: httpx.AsyncClient) -> int:
    """
    Pull the latest headlines from NewsData.io and upsert them.

    Results without an ``article_id`` or a ``title`` are skipped.  Returns
    the number of rows written.
    """
    data = await _get_json(
        client,
        settings.NEWSDATA_URL,
        {
            "apikey": settings.NEWSDATA_API_KEY,
            "country": settings.NEWS_COUNTRY,
            "language": settings.NEWS_LANGUAGE,
        },
    )
    stored = 0
    for article in data.get("results") or []:
        if not article.get("article_id") or not article.get("title"):
            continue
        await upsert_news(
            db,
            article["article_id"],
            article["title"],
            article.get("image_url"),
            article.get("link"),
            article.get("description"),
        )
        stored += 1
    logger.info("Stored %d latest news items", stored)
    return stored


async def fetch_news_by_category(
    db: AsyncSession, client: httpx.AsyncClient, category: str
) -> dict:
    """
    Pull *category* headlines from TheNewsAPI and upsert them with
    ``type = category``.

    Queries are tried in order until one returns results: category filter
    with the configured locale, keyword search with the locale, keyword
    search without it.
    """
    base = {
        "api_token": settings.THENEWS_API_KEY,
        "language": settings.NEWS_LANGUAGE,
        "limit": settings.NEWS_FETCH_LIMIT,
    }
    attempts = (
        {**base, "locale": settings.NEWS_LOCALE, "categories": category},
        {**base, "locale": settings.NEWS_LOCALE, "search": category},
        {**base, "search": category},
    )

    articles: list[dict] = []
    for params in attempts:
        data = await _get_json(client, settings.THENEWS_URL, params)
        articles = data.get("data") or []
        if articles:
            break

    for article in articles:
        if not article.get("uuid") or not article.get("title"):
            continue
        await upsert_news(
            db,
            article["uuid"],
            article["title"],
            article.get("image_url"),
            article.get("url"),
            article.get("description"),
            news_type=category,
        )
    logger.info("Fetched %d %s news items", len(articles), category)
    return {"success": True, "count": len(articles)}


async def get_cached_news(
    db: AsyncSession, news_type: str | None = None, limit: int | None = None
) -> list[dict]:
    """Newest stored items first, optionally limited to one *news_type*."""
    q = select(LatestNews)
    if news_type is not None:
        q = q.where(LatestNews.type == news_type)
    q = q.order_by(LatestNews.created_at.desc()).limit(limit or settings.NEWS_READ_LIMIT)
    result = await db.execute(q)
    return [_news_to_dict(n) for n in result.scalars().all()]
