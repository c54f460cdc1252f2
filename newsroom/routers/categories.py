from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.dependencies import STAFF_ROLES, Identity, require_roles
from newsroom.models import Role
from newsroom.schemas import CategoryCreate, CategoryUpdate
from newsroom.services import category_service

router = APIRouter(prefix="/api/categories", tags=["categories"])

require_editor = require_roles(Role.ADMIN, Role.EDITOR)


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return {"categories": await category_service.list_menu_categories(db)}


@router.post("", status_code=201)
async def create_category(
    data: CategoryCreate,
    identity: Identity = Depends(require_roles(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    category = await category_service.create_category(db, data)
    return {"message": "Category created successfully", "category": category}


@router.get("/all-with-hierarchy")
async def list_categories_with_hierarchy(db: AsyncSession = Depends(get_db)):
    return {"categories": await category_service.list_with_hierarchy(db)}


@router.get("/{slug_or_id}")
async def get_category(slug_or_id: str, db: AsyncSession = Depends(get_db)):
    return {"category": await category_service.get_category(db, slug_or_id)}


@router.put("/{slug_or_id}")
async def update_category(
    slug_or_id: str,
    data: CategoryUpdate,
    identity: Identity = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    category = await category_service.update_category(db, slug_or_id, data)
    return {"message": "Category updated successfully", "category": category}


@router.delete("/{slug_or_id}")
async def delete_category(
    slug_or_id: str,
    identity: Identity = Depends(require_editor),
    db: AsyncSession = Depends(get_db),
):
    await category_service.delete_category(db, slug_or_id)
    return {"message": "Category deleted (soft) successfully"}
