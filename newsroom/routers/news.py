from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.config import settings
from newsroom.database import get_db
from newsroom.errors import NotFoundError
from newsroom.services import news_service

router = APIRouter(prefix="/api/news", tags=["news"])


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Outbound client for the news providers; overridden in tests."""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client


@router.post("/fetch-latest")
async def fetch_latest(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    count = await news_service.fetch_latest_news(db, client)
    return {"success": True, "message": "News updated successfully.", "count": count}


@router.post("/fetch")
async def fetch_by_category(
    category: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    return await news_service.fetch_news_by_category(db, client, category)


@router.get("")
async def get_cached_news(db: AsyncSession = Depends(get_db)):
    return await news_service.get_cached_news(db)


@router.get("/{category}")
async def get_news_by_category(category: str, db: AsyncSession = Depends(get_db)):
    if category not in news_service.NEWS_CATEGORIES:
        raise NotFoundError("Unknown news category")
    return await news_service.get_cached_news(db, news_type=category)
