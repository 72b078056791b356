"""
Category API Endpoints.

Public listing; create/update/delete require an admin.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.shop import Category
from app.modules.auth.policy import Principal
from app.modules.shop.service import ShopService

router = APIRouter()


# ==================== Schemas ====================


class CategoryRequest(BaseModel):
    """Create or rename a category."""

    name: str = Field(min_length=2, max_length=100)


def category_to_dict(category: Category, product_count: int | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"id": category.id, "name": category.name}
    if product_count is not None:
        data["product_count"] = product_count
    return data


# ==================== Endpoints ====================


@router.get("")
async def list_categories(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get all categories with their product counts."""
    shop = ShopService(db)
    categories = await shop.list_categories()

    return {"data": [category_to_dict(cat, count) for cat, count in categories]}


@router.post("", status_code=201)
async def create_category(
    request: CategoryRequest,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create category."""
    shop = ShopService(db)
    category = await shop.create_category(request.name)
    return {"data": category_to_dict(category, 0)}


@router.get("/{category_id}")
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get category by ID."""
    shop = ShopService(db)
    category = await shop.get_category(category_id)

    if not category:
        raise NotFoundError("Category not found")

    count = await shop.count_category_products(category_id)
    return {"data": category_to_dict(category, count)}


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    request: CategoryRequest,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Rename category."""
    shop = ShopService(db)
    category = await shop.update_category(category_id, request.name)
    count = await shop.count_category_products(category_id)
    return {"data": category_to_dict(category, count)}


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Delete category. Refused while products still reference it."""
    shop = ShopService(db)
    await shop.delete_category(category_id)
    return {"data": {"success": True}}
