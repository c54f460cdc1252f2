from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.dependencies import PaginationParams, require_roles
from newsroom.models import Role
from newsroom.schemas import AdminUserCreate, ArticleStatusUpdate, UserRoleUpdate
from newsroom.services import article_service, user_service

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_roles(Role.ADMIN))],
)


# --- Users ---

@router.get("/users")
async def list_users(
    pagination: PaginationParams = Depends(),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_users(db, pagination.page, pagination.limit, search)


@router.post("/users", status_code=201)
async def create_user(data: AdminUserCreate, db: AsyncSession = Depends(get_db)):
    user = await user_service.create_user(db, data)
    return {"message": "User created successfully", "user": user}


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: int, data: UserRoleUpdate, db: AsyncSession = Depends(get_db)
):
    user = await user_service.update_role(db, user_id, data.role)
    return {"message": "User role updated successfully", "user": user}


@router.patch("/users/{user_id}/toggle")
async def toggle_user_active(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_service.toggle_active(db, user_id)
    state = "activated" if user["is_active"] else "deactivated"
    return {"message": f"User {state}", "user": user}


# --- Articles ---

@router.get("/articles")
async def list_articles(
    pagination: PaginationParams = Depends(),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await article_service.admin_list_articles(
        db, pagination.page, pagination.limit, search
    )


@router.get("/articles/{slug_or_id}")
async def get_article(slug_or_id: str, db: AsyncSession = Depends(get_db)):
    return {"article": await article_service.admin_get_article(db, slug_or_id)}


@router.patch("/articles/{article_id}/status")
async def change_article_status(
    article_id: int, data: ArticleStatusUpdate, db: AsyncSession = Depends(get_db)
):
    article = await article_service.update_status(db, article_id, data.status)
    return {"message": "Article status updated successfully", "article": article}


@router.delete("/articles/{article_id}")
async def delete_article(article_id: int, db: AsyncSession = Depends(get_db)):
    await article_service.admin_delete_article(db, article_id)
    return {"message": "Article deleted successfully"}
