"""
API Version 1 Router.

Combines all API endpoints under the configured API prefix.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, cart, categories, orders, payment, products

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, tags=["Auth"])
router.include_router(categories.router, prefix="/categories", tags=["Categories"])
router.include_router(products.router, prefix="/products", tags=["Products"])
router.include_router(cart.router, prefix="/cart", tags=["Cart"])
router.include_router(orders.router, prefix="/orders", tags=["Orders"])
router.include_router(payment.router, prefix="/payment", tags=["Payment"])
router.include_router(orders.admin_router, prefix="/admin", tags=["Admin"])
