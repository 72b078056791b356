"""
Payment API Endpoints.

Two-step card payment:
1. create-order: open a gateway order for the stored order total
2. verify: check the gateway signature, then mark the order paid
"""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_user
from app.api.v1.endpoints.orders import order_to_dict
from app.core.database import get_db
from app.core.exceptions import PaymentVerificationError, ValidationError
from app.models.shop import PaymentStatus
from app.modules.auth.policy import Principal
from app.modules.shop.payment import PaymentService, get_payment_service
from app.modules.shop.service import ShopService

router = APIRouter()


# ==================== Schemas ====================


class CreatePaymentOrderRequest(BaseModel):
    """Gateway order for a checkout."""

    amount: Decimal = Field(gt=0, decimal_places=2)
    order_id: str = Field(min_length=1, description="Merchant correlation id")


class VerifyPaymentRequest(BaseModel):
    """Values returned by the checkout widget after payment."""

    razorpay_payment_id: str = Field(min_length=1)
    razorpay_order_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)
    order_id: str = Field(min_length=1, description="Merchant correlation id")


# ==================== Endpoints ====================


@router.post("/create-order")
async def create_payment_order(
    request: CreatePaymentOrderRequest,
    principal: Principal = Depends(require_user),
    payment: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Create a gateway order for one of the caller's orders.

    The amount must equal the stored order total. Returns the gateway order
    and the publishable key for the browser widget.
    """
    shop = ShopService(db)
    order = await shop.get_order_for(principal, request.order_id)

    if order.payment_status is PaymentStatus.COMPLETED:
        raise ValidationError("Order is already paid")
    if request.amount != order.total:
        raise ValidationError(
            "Amount does not match order total",
            details={"amount": [f"Expected {order.total}"]},
        )

    gateway_order = await payment.create_gateway_order(
        amount=order.total,
        receipt=order.order_number,
        notes={"order_id": order.order_number, "user_id": str(principal.id)},
    )
    await shop.attach_gateway_order(order, gateway_order["id"])
    logger.info(
        f"Gateway order {gateway_order['id']} created for {order.order_number}"
    )

    return {"data": {"order": gateway_order, "key": payment.publishable_key}}


@router.post("/verify")
async def verify_payment(
    request: VerifyPaymentRequest,
    principal: Principal = Depends(require_user),
    payment: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Verify a completed payment.

    The signature must be valid and issued for the gateway order opened for
    this order. On success the order moves to PROCESSING with payment
    COMPLETED. Any failure leaves the order untouched.
    """
    if not payment.verify_signature(
        gateway_order_id=request.razorpay_order_id,
        payment_id=request.razorpay_payment_id,
        signature=request.razorpay_signature,
    ):
        raise PaymentVerificationError()

    shop = ShopService(db)
    order = await shop.get_order_for(principal, request.order_id)
    if order.gateway_order_id != request.razorpay_order_id:
        logger.warning(
            f"Gateway order {request.razorpay_order_id} does not belong to "
            f"order {order.order_number}"
        )
        raise PaymentVerificationError()

    order = await shop.record_payment(order, request.razorpay_payment_id)

    return {"data": {"success": True, "order": order_to_dict(order)}}
