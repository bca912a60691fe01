"""
Cart totals.

    subtotal = sum(price * quantity)
    shipping = 0 if subtotal > free_shipping_threshold else flat_shipping_fee
    tax      = subtotal * tax_rate
    total    = subtotal + shipping + tax

Everything is ``Decimal`` so repeated additions never drift. Values are rounded
to cents only when shown or sent to the server. These are display figures;
the server's order totals are what gets charged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from store.models import CartItem

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PricingPolicy:
    free_shipping_threshold: Decimal = Decimal("100")
    flat_shipping_fee: Decimal = Decimal("10")
    tax_rate: Decimal = Decimal("0.10")

    @classmethod
    def from_settings(cls, settings) -> PricingPolicy:
        return cls(
            free_shipping_threshold=Decimal(settings.free_shipping_threshold),
            flat_shipping_fee=Decimal(settings.flat_shipping_fee),
            tax_rate=Decimal(settings.tax_rate),
        )


DEFAULT_POLICY = PricingPolicy()


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_price(value: Decimal, symbol: str = "$") -> str:
    return f"{symbol}{to_cents(value):,.2f}"


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.shipping_price == 0

    def rounded(self) -> PriceBreakdown:
        """Per-component cents; the total is the sum of the rounded parts."""
        subtotal = to_cents(self.subtotal)
        shipping = to_cents(self.shipping_price)
        tax = to_cents(self.tax_price)
        return PriceBreakdown(subtotal, shipping, tax, subtotal + shipping + tax)

    @property
    def amount_minor(self) -> int:
        """Rounded total in minor currency units, as the payment API expects."""
        return int(self.rounded().total_price * 100)


def compute_totals(
    items: Iterable[CartItem], policy: PricingPolicy = DEFAULT_POLICY
) -> PriceBreakdown:
    subtotal = sum((Decimal(i.price) * i.quantity for i in items), Decimal("0"))
    if subtotal > policy.free_shipping_threshold:
        shipping = Decimal("0")
    else:
        shipping = policy.flat_shipping_fee
    tax = subtotal * policy.tax_rate
    return PriceBreakdown(
        subtotal=subtotal,
        shipping_price=shipping,
        tax_price=tax,
        total_price=subtotal + shipping + tax,
    )


def amount_to_free_shipping(
    subtotal: Decimal, policy: PricingPolicy = DEFAULT_POLICY
) -> Decimal:
    """How much more must be spent before shipping is free (0 if already free)."""
    gap = policy.free_shipping_threshold - subtotal
    return gap if gap >= 0 else Decimal("0")
