"""
Checkout steps and their entry guards.

    CART -> SHIPPING -> CONFIRM -> PAYMENT -> SUCCESS

Guards are evaluated on every entry, never cached: emptying the cart while the
confirm screen is up sends the user back to the cart the next time that
screen is entered or refreshed. A failed guard is a silent redirect.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from api import crud, schemas
from api.errors import ApiError
from store.app_store import AppStore
from store.cart import ClearCart, ClearShippingInfo, SetShippingInfo
from store.errors import CheckoutRedirect, OrderCreationFailed, PaymentFailed
from store.forms import CardForm, validate_shipping
from store.models import CartState
from store.payment import PaymentGateway
from store.pricing import DEFAULT_POLICY, PriceBreakdown, PricingPolicy, compute_totals
from utils.logger import get_logger

_logger = get_logger(__name__)


class CheckoutStep(str, Enum):
    CART = "cart"
    SHIPPING = "shipping"
    CONFIRM = "confirm"
    PAYMENT = "payment"
    SUCCESS = "success"


def resolve_entry(
    step: CheckoutStep, cart: CartState, has_order: bool = False
) -> CheckoutStep:
    """Return the step the user actually lands on when asking for ``step``."""
    if step == CheckoutStep.CART:
        return step
    if step == CheckoutStep.SUCCESS:
        return step if has_order else CheckoutStep.CART
    if cart.is_empty:
        return CheckoutStep.CART
    if step == CheckoutStep.SHIPPING:
        return step
    # CONFIRM and PAYMENT
    if cart.shipping_info is None:
        return CheckoutStep.SHIPPING
    return step


def build_order(
    cart: CartState, totals: PriceBreakdown, payment_intent_id: str
) -> schemas.OrderCreate:
    rounded = totals.rounded()
    return schemas.OrderCreate(
        shipping_info=cart.shipping_info,
        order_items=[
            schemas.OrderItem(
                product=i.product,
                name=i.name,
                price=i.price,
                quantity=i.quantity,
                image=i.image,
            )
            for i in cart.items
        ],
        items_price=rounded.subtotal,
        tax_price=rounded.tax_price,
        shipping_price=rounded.shipping_price,
        payment_info=schemas.PaymentInfo(id=payment_intent_id, status="succeeded"),
    )


class CheckoutFlow:
    """
    Drives one checkout. Screens call ``enter`` before rendering and go
    wherever it says.
    """

    def __init__(
        self,
        store: AppStore,
        api: crud.Api,
        gateway: Optional[PaymentGateway] = None,
        policy: PricingPolicy = DEFAULT_POLICY,
        currency: str = "usd",
    ):
        self.store = store
        self.api = api
        self.gateway = gateway
        self.policy = policy
        self.currency = currency
        self.step = CheckoutStep.CART
        self.order: Optional[schemas.Order] = None

    @property
    def totals(self) -> PriceBreakdown:
        return compute_totals(self.store.cart.items, self.policy)

    def enter(self, step: CheckoutStep) -> CheckoutStep:
        landed = resolve_entry(step, self.store.cart, self.order is not None)
        if landed != step:
            _logger.debug(f"checkout guard: {step.value} -> {landed.value}")
        self.step = landed
        return landed

    def submit_shipping(self, **fields) -> CheckoutStep:
        """Validate and store the address, then move on to the confirm step."""
        info = validate_shipping(**fields)
        self.store.dispatch(SetShippingInfo(info))
        return self.enter(CheckoutStep.CONFIRM)

    async def pay(self, card: CardForm) -> schemas.Order:
        """
        Charge the card and record the order.

        Raises ``PaymentFailed`` if the charge did not go through and
        ``OrderCreationFailed`` if it did but the order was not recorded. Both
        leave the flow on the payment step; nothing is retried automatically.
        ``CheckoutRedirect`` means the payment guard failed and nothing was
        sent.
        """
        landed = self.enter(CheckoutStep.PAYMENT)
        if landed != CheckoutStep.PAYMENT:
            raise CheckoutRedirect(landed)
        if self.gateway is None:
            raise PaymentFailed("Card payments are not available right now.")

        cart = self.store.cart
        totals = self.totals

        try:
            intent = await crud.create_payment_intent(
                self.api, totals.amount_minor, self.currency
            )
        except ApiError as e:
            raise PaymentFailed(e.message) from e

        result = await self.gateway.confirm_card_payment(intent.client_secret, card)
        if not result.succeeded:
            raise PaymentFailed(result.error or "Payment failed")

        try:
            order = await crud.create_order(
                self.api, build_order(cart, totals, intent.payment_intent_id)
            )
        except ApiError as e:
            _logger.error(
                f"payment {intent.payment_intent_id} captured but order creation "
                f"failed: {e.message}"
            )
            raise OrderCreationFailed(
                f"Your payment was received but the order could not be saved "
                f"({e.message}). Reference: {intent.payment_intent_id}",
                intent.payment_intent_id,
            ) from e

        self.store.dispatch(ClearCart())
        self.store.dispatch(ClearShippingInfo())
        self.order = order
        self.step = CheckoutStep.SUCCESS
        _logger.info(f"order {order.id} placed")
        return order
