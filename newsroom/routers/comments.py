from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.dependencies import Identity, get_current_identity
from newsroom.schemas import CommentCreate, CommentUpdate
from newsroom.services import comment_service

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.post("", status_code=201)
async def add_comment(
    data: CommentCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, data, identity.user_id)
    return {"message": "Comment added successfully", "comment": comment}


@router.get("/user/{user_id}")
async def get_comments_by_user(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return {"comments": await comment_service.get_comments_by_user(db, user_id)}


@router.get("/{article_id}")
async def get_comments(article_id: int, db: AsyncSession = Depends(get_db)):
    return {"comments": await comment_service.get_comments_for_article(db, article_id)}


@router.put("/{comment_id}")
async def edit_comment(
    comment_id: int,
    data: CommentUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.update_comment(db, comment_id, data, identity.user_id)
    return {"message": "Comment updated successfully", "comment": comment}


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, comment_id, identity.user_id)
    return {"message": "Comment deleted successfully"}
