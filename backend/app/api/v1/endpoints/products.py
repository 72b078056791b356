"""
Product API Endpoints.

Catalog browsing with filters and pagination; writes require an admin.
"""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, HttpUrl
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.shop import Product
from app.modules.auth.policy import Principal
from app.modules.shop.service import ShopService

router = APIRouter()


# ==================== Schemas ====================


class CreateProductRequest(BaseModel):
    """New catalog product."""

    name: str = Field(min_length=2, max_length=255)
    description: str = Field(min_length=5)
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    image_url: HttpUrl
    category_id: int
    stock: int = Field(ge=0)


class UpdateProductRequest(BaseModel):
    """Partial product update; omitted fields are left as they are."""

    name: str | None = Field(None, min_length=2, max_length=255)
    description: str | None = Field(None, min_length=5)
    price: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    image_url: HttpUrl | None = None
    category_id: int | None = None
    stock: int | None = Field(None, ge=0)


def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price),
        "image_url": product.image_url,
        "stock": product.stock,
        "in_stock": product.is_in_stock,
        "category": {
            "id": product.category.id,
            "name": product.category.name,
        } if product.category else None,
        "created_at": product.created_at.isoformat(),
        "updated_at": product.updated_at.isoformat(),
    }


# ==================== Endpoints ====================


@router.get("")
async def list_products(
    category: int | None = Query(None, description="Filter by category ID"),
    search: str | None = Query(None, description="Search in name and description"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.products_per_page, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Get products with filtering and pagination.

    Out-of-stock products are listed too, flagged by ``in_stock``.
    """
    shop = ShopService(db)
    result = await shop.list_products(
        category_id=category,
        search=search,
        page=page,
        limit=limit,
    )

    return {
        "data": {
            "products": [product_to_dict(p) for p in result.items],
            "pagination": {
                "page": result.page,
                "limit": result.limit,
                "total_products": result.total,
                "total_pages": result.total_pages,
            },
        }
    }


@router.post("", status_code=201)
async def create_product(
    request: CreateProductRequest,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create product."""
    shop = ShopService(db)
    product = await shop.create_product(
        name=request.name,
        description=request.description,
        price=request.price,
        image_url=str(request.image_url),
        category_id=request.category_id,
        stock=request.stock,
    )
    return {"data": product_to_dict(product)}


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get product details."""
    shop = ShopService(db)
    product = await shop.get_product(product_id)

    if not product:
        raise NotFoundError("Product not found")

    return {"data": product_to_dict(product)}


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    request: UpdateProductRequest,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Update product fields."""
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "image_url" in changes:
        changes["image_url"] = str(request.image_url)

    shop = ShopService(db)
    product = await shop.update_product(product_id, changes)
    return {"data": product_to_dict(product)}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Delete product. Refused once it appears in an order."""
    shop = ShopService(db)
    await shop.delete_product(product_id)
    return {"data": {"success": True}}
