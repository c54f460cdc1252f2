"""
Comment service: comments left by signed-in users on articles.

Only the author of a comment may edit or delete it; there is no staff
override.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from newsroom.errors import ForbiddenError, NotFoundError
from newsroom.models import Article, Comment
from newsroom.schemas import CommentCreate, CommentUpdate

logger = logging.getLogger(__name__)


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "user_id": comment.user_id,
        "article_id": comment.article_id,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
    }


async def _owned_comment(db: AsyncSession, comment_id: int, user_id: int, action: str) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.user_id != user_id:
        raise ForbiddenError(f"You are not authorized to {action} this comment")
    return comment


async def add_comment(db: AsyncSession, data: CommentCreate, user_id: int) -> dict:
    """
    Append a new comment to ``data.article_id``.

    Raises NotFoundError when the target article does not exist.
    """
    if await db.get(Article, data.article_id) is None:
        raise NotFoundError("Article not found")

    comment = Comment(content=data.content, user_id=user_id, article_id=data.article_id)
    db.add(comment)
    await db.flush()
    logger.info("Comment %s added to article %s by user_id=%s", comment.id, data.article_id, user_id)
    return _comment_to_dict(comment)


async def get_comments_for_article(db: AsyncSession, article_id: int) -> list[dict]:
    """Comments on *article_id*, newest first, each with its commenter."""
    q = (
        select(Comment)
        .where(Comment.article_id == article_id)
        .options(joinedload(Comment.user))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    result = await db.execute(q)
    comments = []
    for comment in result.scalars().all():
        data = _comment_to_dict(comment)
        data["user"] = {"id": comment.user.id, "name": comment.user.name} if comment.user else None
        comments.append(data)
    return comments


async def get_comments_by_user(db: AsyncSession, user_id: int) -> list[dict]:
    q = (
        select(Comment)
        .where(Comment.user_id == user_id)
        .options(joinedload(Comment.article))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    result = await db.execute(q)
    comments = []
    for comment in result.scalars().all():
        data = _comment_to_dict(comment)
        article = comment.article
        data["article"] = (
            {"id": article.id, "title": article.title, "slug": article.slug} if article else None
        )
        comments.append(data)
    return comments


async def update_comment(
    db: AsyncSession, comment_id: int, data: CommentUpdate, user_id: int
) -> dict:
    comment = await _owned_comment(db, comment_id, user_id, "edit")
    comment.content = data.content
    await db.flush()
    return _comment_to_dict(comment)


async def delete_comment(db: AsyncSession, comment_id: int, user_id: int) -> None:
    comment = await _owned_comment(db, comment_id, user_id, "delete")
    await db.delete(comment)
    await db.flush()
    logger.info("Comment %s deleted by user_id=%s", comment_id, user_id)
