from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.dependencies import (
    STAFF_ROLES,
    Identity,
    PaginationParams,
    get_optional_identity,
    require_roles,
)
from newsroom.models import ArticleStatus, Role
from newsroom.schemas import ArticleCreate, ArticleStatusUpdate, ArticleUpdate
from newsroom.services import article_service

router = APIRouter(prefix="/api/articles", tags=["articles"])

require_staff = require_roles(*STAFF_ROLES)
require_editor = require_roles(Role.ADMIN, Role.EDITOR)


@router.get("")
async def list_articles(
    pagination: PaginationParams = Depends(),
    search: Optional[str] = None,
    category: Optional[str] = None,
    author: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    status: Optional[ArticleStatus] = None,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db,
        identity,
        page=pagination.page,
        limit=pagination.limit,
        search=search,
        category=category,
        author=author,
        start_date=start_date,
        end_date=end_date,
        status=status,
    )


@router.post("", status_code=201)
async def create_article(
    data: ArticleCreate,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create_article(db, data, identity)
    return {"message": "Article created successfully", "article": article}


@router.get("/adjacent/{slug}")
async def get_adjacent(slug: str, db: AsyncSession = Depends(get_db)):
    return await article_service.get_adjacent(db, slug)


@router.get("/role-check/{slug_or_id}")
async def get_article_for_editing(
    slug_or_id: str,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.get_article_for_editing(db, slug_or_id, identity)}


@router.put("/role-check/{slug_or_id}")
async def update_article_from_editor(
    slug_or_id: str,
    data: ArticleUpdate,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_article(db, slug_or_id, data, identity)
    return {"message": "Article updated successfully", "article": article}


@router.patch("/restore/{slug_or_id}")
async def restore_article(
    slug_or_id: str,
    identity: Identity = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.restore_article(db, slug_or_id)


@router.patch("/status/{article_id}")
async def update_article_status(
    article_id: int,
    data: ArticleStatusUpdate,
    identity: Identity = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_status(db, article_id, data.status)
    return {"message": "Article status updated successfully", "article": article}


@router.get("/{slug_or_id}")
async def get_article(
    slug_or_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.get_article(db, slug_or_id, identity)}


@router.put("/{slug_or_id}")
async def update_article(
    slug_or_id: str,
    data: ArticleUpdate,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_article(db, slug_or_id, data, identity)
    return {"message": "Article updated successfully", "article": article}


@router.delete("/{slug_or_id}")
async def delete_article(
    slug_or_id: str,
    force: bool = Query(False, description="Delete permanently (ADMIN only)."),
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.delete_article(db, slug_or_id, identity, force=force)
