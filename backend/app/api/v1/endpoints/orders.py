"""
Order API Endpoints.

Checkout submission and order history for the logged-in user,
plus the admin order list.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin, require_user
from app.core.database import get_db
from app.models.shop import Order, OrderStatus, PaymentMethod
from app.modules.auth.policy import Principal
from app.modules.shop.service import ShopService

router = APIRouter()
admin_router = APIRouter()


# ==================== Schemas ====================


class OrderLineRequest(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class ShippingAddress(BaseModel):
    name: str = Field(min_length=2)
    address: str = Field(min_length=5)
    city: str = Field(min_length=2)
    state: str = Field(min_length=2)
    postal_code: str = Field(min_length=3, max_length=20)
    country: str = Field(min_length=2)


class CreateOrderRequest(BaseModel):
    """Checkout submission."""

    items: list[OrderLineRequest] = Field(min_length=1)
    shipping: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.CARD
    order_number: str | None = Field(None, min_length=4, max_length=50)


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "order_number": order.order_number,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method.value,
        "payment_id": order.payment_id,
        "subtotal": float(order.subtotal),
        "shipping_cost": float(order.shipping_cost),
        "tax_amount": float(order.tax_amount),
        "total": float(order.total),
        "shipping": {
            "name": order.shipping_name,
            "address": order.shipping_address,
            "city": order.shipping_city,
            "state": order.shipping_state,
            "postal_code": order.shipping_postal_code,
            "country": order.shipping_country,
        },
        "items": [
            {
                "product_id": item.product_id,
                "name": item.product_name,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "total": float(item.total),
            }
            for item in order.items
        ],
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
        "created_at": order.created_at.isoformat(),
    }


# ==================== Orders ====================


@router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    principal: Principal = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Submit checkout.

    The returned ``order_number`` is the correlation id for payment.
    """
    shop = ShopService(db)
    order = await shop.create_order(
        user_id=principal.id,
        items=[line.model_dump() for line in request.items],
        shipping_info=request.shipping.model_dump(),
        payment_method=request.payment_method,
        order_number=request.order_number,
    )
    return {"data": order_to_dict(order)}


@router.get("")
async def list_my_orders(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the logged-in user's orders."""
    shop = ShopService(db)
    orders = await shop.list_orders(user_id=principal.id, limit=limit, offset=offset)

    return {
        "data": {
            "items": [order_to_dict(o) for o in orders],
            "limit": limit,
            "offset": offset,
        }
    }


@router.get("/{order_number}")
async def get_order(
    order_number: str,
    principal: Principal = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get order details."""
    shop = ShopService(db)
    order = await shop.get_order_for(principal, order_number)
    return {"data": order_to_dict(order)}


# ==================== Admin ====================


@admin_router.get("/orders")
async def list_all_orders(
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get all orders for the back office."""
    shop = ShopService(db)
    orders = await shop.list_orders(status=status, limit=limit, offset=offset)
    total = await shop.count_orders(status=status)

    return {
        "data": {
            "items": [
                {**order_to_dict(o), "user_id": o.user_id}
                for o in orders
            ],
            "total": total,
            "limit": limit,
            "offset": offset,
        }
    }
