# client-owned state records

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Literal, Optional, Tuple

from api.schemas import Product, ShippingInfo, User


@dataclass(frozen=True)
class CartItem:
    product: str  # product id
    name: str
    price: Decimal
    image: str
    stock: int  # snapshot taken when the item was (re-)added
    quantity: int = 1

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> CartItem:
        return cls(
            product=product.id,
            name=product.name,
            price=Decimal(product.price),
            image=product.image,
            stock=product.stock,
            quantity=quantity,
        )

    def with_quantity(self, quantity: int) -> CartItem:
        return replace(self, quantity=quantity)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartState:
    items: Tuple[CartItem, ...] = ()
    shipping_info: Optional[ShippingInfo] = None

    def find(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product == product_id:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class SessionState:
    """
    Authentication state. ``is_authenticated`` is derived from the token so the
    two can never disagree.
    """

    user: Optional[User] = None
    token: Optional[str] = None
    loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.user is not None and self.user.role == "admin"


@dataclass(frozen=True)
class Notice:
    """A transient message for the user, shown with ``App.notify``."""

    message: str
    severity: Literal["information", "warning", "error"] = "information"


@dataclass(frozen=True)
class Snapshot:
    cart: CartState = field(default_factory=CartState)
    session: SessionState = field(default_factory=SessionState)
