"""
Cart API Endpoints.

The cart lives in the client; this only prices a submitted cart.
"""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.modules.shop.cart import AddItem, CartItem, CartState, checkout_totals, reduce

router = APIRouter()


# ==================== Schemas ====================


class CartLine(BaseModel):
    """Item as held by the client cart."""

    product_id: int
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(1, ge=1)
    image_url: str | None = None


class CartTotalsRequest(BaseModel):
    items: list[CartLine]


# ==================== Endpoints ====================


@router.post("/totals")
async def cart_totals(request: CartTotalsRequest) -> dict[str, Any]:
    """Get subtotal, shipping, tax and total for a cart."""
    cart = CartState()
    for line in request.items:
        cart = reduce(cart, AddItem(CartItem(**line.model_dump())))

    totals = checkout_totals(cart.subtotal)

    return {
        "data": {
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "price": float(item.price),
                    "quantity": item.quantity,
                    "total": float(item.total),
                    "image_url": item.image_url,
                }
                for item in cart.items
            ],
            "item_count": cart.item_count,
            "totals": totals.to_dict(),
        }
    }
