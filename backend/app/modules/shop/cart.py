"""
Cart - Client-side shopping cart state.

The cart is never persisted server-side. It is modelled as an immutable
state plus actions; ``reduce`` applies one action and returns the next state.
"""

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from app.core.config import settings

CENTS = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartItem:
    """Cart line with a price snapshot taken when it was added."""

    product_id: int
    name: str
    price: Decimal
    quantity: int = 1
    image_url: str | None = None

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartState:
    items: tuple[CartItem, ...] = ()

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((item.total for item in self.items), Decimal("0")))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def get(self, product_id: int) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None


# ==================== Actions ====================


@dataclass(frozen=True)
class AddItem:
    item: CartItem


@dataclass(frozen=True)
class RemoveItem:
    product_id: int


@dataclass(frozen=True)
class UpdateQuantity:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


CartAction = AddItem | RemoveItem | UpdateQuantity | ClearCart


def reduce(state: CartState, action: CartAction) -> CartState:
    """
    Apply one action to the cart.

    Adding a product already in the cart increases its quantity.
    A quantity below 1 removes the line.
    """
    if isinstance(action, AddItem):
        new = action.item
        if new.quantity < 1:
            return state
        if state.get(new.product_id) is None:
            return replace(state, items=state.items + (new,))
        return replace(
            state,
            items=tuple(
                replace(item, quantity=item.quantity + new.quantity)
                if item.product_id == new.product_id
                else item
                for item in state.items
            ),
        )

    if isinstance(action, RemoveItem):
        return replace(
            state,
            items=tuple(i for i in state.items if i.product_id != action.product_id),
        )

    if isinstance(action, UpdateQuantity):
        if action.quantity < 1:
            return reduce(state, RemoveItem(action.product_id))
        return replace(
            state,
            items=tuple(
                replace(item, quantity=action.quantity)
                if item.product_id == action.product_id
                else item
                for item in state.items
            ),
        )

    if isinstance(action, ClearCart):
        return CartState()

    raise TypeError(f"Unknown cart action: {action!r}")


# ==================== Totals ====================


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total", self.subtotal + self.shipping + self.tax)

    def to_dict(self) -> dict[str, float]:
        return {
            "subtotal": float(self.subtotal),
            "shipping": float(self.shipping),
            "tax": float(self.tax),
            "total": float(self.total),
        }


def checkout_totals(
    subtotal: Decimal,
    shipping: Decimal | None = None,
    tax_rate: Decimal | None = None,
) -> CheckoutTotals:
    """
    Flat shipping plus a percentage tax on the subtotal.

    Defaults come from settings (5.00 shipping, 5 % tax).
    """
    shipping = settings.shipping_flat_rate if shipping is None else shipping
    tax_rate = settings.tax_rate if tax_rate is None else tax_rate
    subtotal = to_money(subtotal)
    return CheckoutTotals(
        subtotal=subtotal,
        shipping=to_money(shipping),
        tax=to_money(subtotal * tax_rate),
    )
