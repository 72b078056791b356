"""
Shop Module - E-commerce functionality.

Features:
- Product catalog with categories
- Shopping cart state and checkout totals
- Orders
- Razorpay payments
"""

from app.modules.shop.payment import PaymentService
from app.modules.shop.service import ShopService

__all__ = [
    "ShopService",
    "PaymentService",
]
