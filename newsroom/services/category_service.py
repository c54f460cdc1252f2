"""
Category service: the two-level category tree articles are filed under.

Categories are never removed: deleting one sets ``is_active = false`` and
inactive categories drop out of every public read.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.errors import NotFoundError, ValidationError
from newsroom.models import Category
from newsroom.schemas import CategoryCreate, CategoryUpdate
from newsroom.services.slugs import identifier_clause, pick_identified, unique_slug

logger = logging.getLogger(__name__)

# Navigation order of the top-level sections; anything else sorts last.
_MENU_ORDER = {
    "general": 1,
    "politics": 2,
    "science-and-technology": 3,
    "sports-and-entertainment": 4,
    "business": 5,
}


def _category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "is_active": category.is_active,
        "parent_id": category.parent_id,
        "created_at": category.created_at.isoformat() if category.created_at else None,
        "updated_at": category.updated_at.isoformat() if category.updated_at else None,
    }


def _ref(category: Category) -> dict:
    return {"id": category.id, "name": category.name, "slug": category.slug}


async def _active_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(
        select(Category).where(Category.is_active.is_(True)).order_by(Category.name.asc())
    )
    return list(result.scalars().all())


async def _find(db: AsyncSession, slug_or_id: str) -> Category | None:
    result = await db.execute(select(Category).where(identifier_clause(Category, slug_or_id)))
    return pick_identified(result.scalars().all(), slug_or_id)


async def _ensure_parent(db: AsyncSession, parent_id: int | None) -> None:
    if parent_id is not None and await db.get(Category, parent_id) is None:
        raise ValidationError("Parent category not found")


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    await _ensure_parent(db, data.parent_id)
    category = Category(
        name=data.name,
        slug=await unique_slug(db, Category, data.name),
        description=data.description,
        is_active=True if data.is_active is None else data.is_active,
        parent_id=data.parent_id,
    )
    db.add(category)
    await db.flush()
    logger.info("Category %s created (%s)", category.id, category.slug)
    return _category_to_dict(category)


async def list_menu_categories(db: AsyncSession) -> list[dict]:
    """
    Active top-level categories with their active children, in
    navigation order.
    """
    categories = await _active_categories(db)
    children: dict[int, list[dict]] = {}
    for category in categories:
        if category.parent_id is not None:
            children.setdefault(category.parent_id, []).append(_ref(category))

    top_level = [c for c in categories if c.parent_id is None]
    top_level.sort(key=lambda c: _MENU_ORDER.get(c.slug, 999))

    menu = []
    for category in top_level:
        data = _category_to_dict(category)
        data["children"] = children.get(category.id, [])
        menu.append(data)
    return menu


async def list_with_hierarchy(db: AsyncSession) -> list[dict]:
    """Every active category with its parent reference and active children."""
    categories = await _active_categories(db)
    by_id = {c.id: c for c in categories}
    children: dict[int, list[dict]] = {}
    for category in categories:
        if category.parent_id is not None:
            children.setdefault(category.parent_id, []).append(_ref(category))

    # Top-level first, then grouped by parent; name order within a group.
    categories.sort(key=lambda c: (c.parent_id is not None, c.parent_id or 0, c.name))

    result = []
    for category in categories:
        data = _category_to_dict(category)
        parent = by_id.get(category.parent_id) if category.parent_id is not None else None
        if parent is None and category.parent_id is not None:
            parent = await db.get(Category, category.parent_id)
        data["parent"] = _ref(parent) if parent else None
        data["children"] = children.get(category.id, [])
        result.append(data)
    return result


async def get_category(db: AsyncSession, slug_or_id: str) -> dict:
    category = await _find(db, slug_or_id)
    if category is None or not category.is_active:
        raise NotFoundError("Category not found")
    return _category_to_dict(category)


async def update_category(db: AsyncSession, slug_or_id: str, data: CategoryUpdate) -> dict:
    category = await _find(db, slug_or_id)
    if category is None:
        raise NotFoundError("Category not found")

    update_data = data.model_dump(exclude_unset=True)
    if "parent_id" in update_data:
        if update_data["parent_id"] == category.id:
            raise ValidationError("A category cannot be its own parent")
        await _ensure_parent(db, update_data["parent_id"])
    if update_data.get("name"):
        category.slug = await unique_slug(db, Category, update_data["name"], exclude_id=category.id)

    for field, value in update_data.items():
        if value is None and field in ("name", "is_active"):
            continue
        setattr(category, field, value)

    await db.flush()
    return _category_to_dict(category)


async def delete_category(db: AsyncSession, slug_or_id: str) -> None:
    category = await _find(db, slug_or_id)
    if category is None:
        raise NotFoundError("Category not found")
    category.is_active = False
    await db.flush()
    logger.info("Category %s deactivated", category.id)
