from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.dependencies import Identity, get_current_identity
from newsroom.schemas import BookmarkRequest
from newsroom.services import bookmark_service

router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


@router.post("", status_code=201)
async def add_bookmark(
    data: BookmarkRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    bookmark, created = await bookmark_service.add_bookmark(db, identity.user_id, data.article_id)
    if not created:
        return JSONResponse(
            status_code=200,
            content={"success": True, "message": "Article already bookmarked", "bookmark": bookmark},
        )
    return {"success": True, "message": "Article bookmarked successfully", "bookmark": bookmark}


@router.delete("")
async def remove_bookmark(
    data: BookmarkRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await bookmark_service.remove_bookmark(db, identity.user_id, data.article_id)
    return {"success": True, "message": "Bookmark removed successfully"}


@router.get("")
async def list_bookmarks(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **await bookmark_service.list_bookmarks(db, identity.user_id)}


@router.get("/{article_id}")
async def get_bookmark(
    article_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    bookmark = await bookmark_service.get_bookmark(db, identity.user_id, article_id)
    return {"success": True, "message": "Article is bookmarked", "bookmark": bookmark}
