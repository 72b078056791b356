"""
Shop Service - Catalog, category/product administration and orders.
"""

import math
import secrets
import string
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import utcnow
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.shop import (
    Category,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
)
from app.modules.auth.policy import Principal
from app.modules.shop.cart import AddItem, CartItem, CartState, checkout_totals, reduce

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """Merchant correlation id, e.g. ``ORD7K2Q9XJD``."""
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(8))
    return f"{ORDER_NUMBER_PREFIX}{suffix}"


@dataclass
class ProductPage:
    """One page of a catalog query."""

    items: list[Product]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class ShopService:
    """
    Service for managing products, categories, and orders.

    Usage:
        shop = ShopService(db_session)
        page = await shop.list_products(category_id=3, search="phone")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize shop service with database session."""
        self.db = db

    async def _flush_unique(self, message: str) -> None:
        """Flush, mapping a unique-constraint race to a conflict."""
        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Integrity error on flush: {e.orig}")
            raise ConflictError(message) from e

    # ==================== Categories ====================

    async def list_categories(self) -> list[tuple[Category, int]]:
        """Get all categories ordered by name, each with its product count."""
        query = (
            select(Category, func.count(Product.id))
            .outerjoin(Category.products)
            .group_by(Category.id)
            .order_by(Category.name)
        )
        result = await self.db.execute(query)
        return [(category, count) for category, count in result.all()]

    async def get_category(self, category_id: int) -> Category | None:
        return await self.db.get(Category, category_id)

    async def get_category_by_name(self, name: str) -> Category | None:
        query = select(Category).where(Category.name == name)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def count_category_products(self, category_id: int) -> int:
        query = select(func.count(Product.id)).where(Product.category_id == category_id)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def _require_category(self, category_id: int) -> Category:
        category = await self.get_category(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    async def create_category(self, name: str) -> Category:
        """
        Create new category.

        Raises:
            ConflictError: Name already taken (exact, case-sensitive match)
        """
        if await self.get_category_by_name(name):
            raise ConflictError("Category with this name already exists")

        category = Category(name=name)
        self.db.add(category)
        await self._flush_unique("Category with this name already exists")

        logger.info(f"Created category {category.id} ({category.name})")
        return category

    async def update_category(self, category_id: int, name: str) -> Category:
        """Rename a category. Keeping the current name is allowed."""
        category = await self._require_category(category_id)

        if name != category.name and await self.get_category_by_name(name):
            raise ConflictError("Category with this name already exists")

        category.name = name
        await self._flush_unique("Category with this name already exists")
        return category

    async def delete_category(self, category_id: int) -> None:
        """
        Delete a category that no product references.

        Raises:
            NotFoundError: Unknown category
            ConflictError: Products still reference it
        """
        category = await self._require_category(category_id)

        product_count = await self.count_category_products(category_id)
        if product_count > 0:
            noun = "product" if product_count == 1 else "products"
            raise ConflictError(
                f"Cannot delete category with {product_count} {noun}. "
                "Please reassign or delete the products first."
            )

        await self.db.delete(category)
        await self.db.flush()
        logger.info(f"Deleted category {category_id}")

    # ==================== Products ====================

    async def list_products(
        self,
        category_id: int | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> ProductPage:
        """
        Get one page of products with their categories.

        Args:
            category_id: Filter by category
            search: Substring matched against name or description
            page: 1-based page number
            limit: Page size

        Returns:
            ProductPage; a page past the end has no items
        """
        filters = []
        if category_id is not None:
            filters.append(Product.category_id == category_id)
        if search:
            filters.append(
                or_(
                    Product.name.contains(search, autoescape=True),
                    Product.description.contains(search, autoescape=True),
                )
            )

        count_query = select(func.count(Product.id)).where(*filters)
        total = (await self.db.execute(count_query)).scalar_one()

        query = (
            select(Product)
            .options(selectinload(Product.category))
            .where(*filters)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.db.execute(query)

        return ProductPage(
            items=list(result.scalars().all()),
            page=page,
            limit=limit,
            total=total,
        )

    async def get_product(self, product_id: int) -> Product | None:
        """Get product by ID with its category."""
        query = (
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.id == product_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_product_by_name(self, name: str) -> Product | None:
        query = select(Product).where(Product.name == name)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _category_for_product(self, category_id: int) -> Category:
        category = await self.get_category(category_id)
        if not category:
            raise ValidationError("Category not found")
        return category

    async def create_product(
        self,
        name: str,
        description: str,
        price: Decimal,
        image_url: str,
        category_id: int,
        stock: int = 0,
    ) -> Product:
        """
        Create new product.

        Raises:
            ValidationError: Category does not exist
            ConflictError: Product name already taken
        """
        category = await self._category_for_product(category_id)

        if await self.get_product_by_name(name):
            raise ConflictError("Product with this name already exists")

        product = Product(
            name=name,
            description=description,
            price=price,
            image_url=image_url,
            stock=stock,
            category=category,
        )
        self.db.add(product)
        await self._flush_unique("Product with this name already exists")

        logger.info(f"Created product {product.id} ({product.name})")
        return product

    async def update_product(self, product_id: int, changes: dict[str, Any]) -> Product:
        """
        Apply a partial update.

        Args:
            product_id: Product ID
            changes: Already-validated field values to set

        Raises:
            NotFoundError: Unknown product
            ValidationError: New category does not exist
            ConflictError: New name belongs to another product
        """
        product = await self.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")

        changes = dict(changes)
        name = changes.get("name")
        if name is not None and name != product.name:
            if await self.get_product_by_name(name):
                raise ConflictError("Product with this name already exists")

        category_id = changes.pop("category_id", None)
        if category_id is not None and category_id != product.category_id:
            product.category = await self._category_for_product(category_id)

        for field_name, value in changes.items():
            setattr(product, field_name, value)

        await self._flush_unique("Product with this name already exists")
        return product

    async def delete_product(self, product_id: int) -> None:
        """
        Delete a product that no order line references.

        Raises:
            NotFoundError: Unknown product
            ConflictError: Product appears in order history
        """
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")

        query = select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)
        order_lines = (await self.db.execute(query)).scalar_one()
        if order_lines > 0:
            raise ConflictError("Cannot delete product that appears in existing orders")

        await self.db.delete(product)
        await self.db.flush()
        logger.info(f"Deleted product {product_id}")

    # ==================== Orders ====================

    async def list_orders(
        self,
        user_id: int | None = None,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Order]:
        """Get orders with filters, newest first."""
        query = select(Order).options(selectinload(Order.items))

        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if status:
            query = query.where(Order.status == status)

        query = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_orders(
        self,
        user_id: int | None = None,
        status: OrderStatus | None = None,
    ) -> int:
        query = select(func.count(Order.id))
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if status:
            query = query.where(Order.status == status)
        return (await self.db.execute(query)).scalar_one()

    async def get_order(self, order_number: str) -> Order | None:
        """Get order by correlation id."""
        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.order_number == order_number)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_order_for(self, principal: Principal, order_number: str) -> Order:
        """
        Get an order the caller may see.

        Other users' orders are reported as missing unless the caller is admin.
        """
        order = await self.get_order(order_number)
        if not order or (order.user_id != principal.id and not principal.is_admin):
            raise NotFoundError("Order not found")
        return order

    async def create_order(
        self,
        user_id: int,
        items: list[dict[str, Any]],
        shipping_info: dict[str, Any],
        payment_method: PaymentMethod = PaymentMethod.CARD,
        order_number: str | None = None,
    ) -> Order:
        """
        Create new order from cart items.

        Unit prices are taken from the catalog at submission time.
        Stock is not reserved or decremented.

        Args:
            user_id: Customer user ID
            items: List of {product_id, quantity}
            shipping_info: Shipping address details
            payment_method: card or cod
            order_number: Client correlation id (generated when omitted)

        Returns:
            Created order

        Raises:
            ValidationError: Empty order or unknown product
            ConflictError: Correlation id already used
        """
        if not items:
            raise ValidationError("Order must contain at least one item")

        product_ids = {item["product_id"] for item in items}
        result = await self.db.execute(select(Product).where(Product.id.in_(product_ids)))
        products = {product.id: product for product in result.scalars().all()}

        missing = sorted(product_ids - products.keys())
        if missing:
            raise ValidationError(
                "Product not found",
                details={"items": [f"Unknown product id {pid}" for pid in missing]},
            )

        cart = CartState()
        for item in items:
            product = products[item["product_id"]]
            cart = reduce(
                cart,
                AddItem(
                    CartItem(
                        product_id=product.id,
                        name=product.name,
                        price=product.price,
                        quantity=item.get("quantity", 1),
                        image_url=product.image_url,
                    )
                ),
            )
        totals = checkout_totals(cart.subtotal)

        order_number = order_number or generate_order_number()
        if await self.get_order(order_number):
            raise ConflictError("Order with this id already exists")

        order = Order(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping,
            tax_amount=totals.tax,
            total=totals.total,
            shipping_name=shipping_info.get("name", ""),
            shipping_address=shipping_info.get("address", ""),
            shipping_city=shipping_info.get("city", ""),
            shipping_state=shipping_info.get("state", ""),
            shipping_postal_code=shipping_info.get("postal_code", ""),
            shipping_country=shipping_info.get("country", ""),
            items=[
                OrderItem(
                    product_id=line.product_id,
                    product_name=line.name,
                    unit_price=line.price,
                    quantity=line.quantity,
                    total=line.total,
                )
                for line in cart.items
            ],
        )
        self.db.add(order)
        await self._flush_unique("Order with this id already exists")

        logger.info(f"Created order {order.order_number} for user {user_id}: {order.total}")
        return order

    async def attach_gateway_order(self, order: Order, gateway_order_id: str) -> Order:
        """Remember the gateway order opened to collect this order's total."""
        order.gateway_order_id = gateway_order_id
        await self.db.flush()
        return order

    async def record_payment(self, order: Order, payment_id: str) -> Order:
        """
        Mark a verified payment on the order.

        Moves payment PENDING -> COMPLETED and order -> PROCESSING. An order
        that is already paid is returned unchanged.
        """
        if order.payment_status is PaymentStatus.COMPLETED:
            logger.info(
                f"Order {order.order_number} already paid "
                f"(payment {order.payment_id}); ignoring repeat verification"
            )
            return order

        order.payment_id = payment_id
        order.payment_status = PaymentStatus.COMPLETED
        order.status = OrderStatus.PROCESSING
        order.paid_at = utcnow()
        await self.db.flush()

        logger.info(f"Payment {payment_id} recorded for order {order.order_number}")
        return order
