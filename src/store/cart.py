"""
Cart reducer.

``reduce_cart(state, action)`` is a pure function: it never touches storage or
the UI. The notice it returns is what the screen should tell the user; a
rejected change raises ``StockLimitExceeded`` and leaves the caller's state as
it was.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

from api.schemas import ShippingInfo
from store.errors import StockLimitExceeded
from store.models import CartItem, CartState, Notice


@dataclass(frozen=True)
class AddToCart:
    item: CartItem
    quantity: int = 1


@dataclass(frozen=True)
class RemoveFromCart:
    product_id: str


@dataclass(frozen=True)
class UpdateQuantity:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class SetShippingInfo:
    info: ShippingInfo


@dataclass(frozen=True)
class ClearShippingInfo:
    pass


CartAction = Union[
    AddToCart, RemoveFromCart, UpdateQuantity, ClearCart, SetShippingInfo, ClearShippingInfo
]
CART_ACTIONS = (
    AddToCart,
    RemoveFromCart,
    UpdateQuantity,
    ClearCart,
    SetShippingInfo,
    ClearShippingInfo,
)


@dataclass(frozen=True)
class CartTransition:
    state: CartState
    notice: Optional[Notice] = None


def _without(state: CartState, product_id: str) -> CartState:
    return replace(
        state, items=tuple(i for i in state.items if i.product != product_id)
    )


def _replace_item(state: CartState, new_item: CartItem) -> CartState:
    return replace(
        state,
        items=tuple(
            new_item if i.product == new_item.product else i for i in state.items
        ),
    )


def _add(state: CartState, action: AddToCart) -> CartTransition:
    if action.quantity < 1:
        raise ValueError("quantity to add must be at least 1")

    incoming = action.item
    existing = state.find(incoming.product)

    if existing is not None:
        wanted = existing.quantity + action.quantity
        # the incoming stock is the fresher snapshot
        if wanted > incoming.stock:
            raise StockLimitExceeded(incoming.product, wanted, incoming.stock)
        merged = replace(existing, stock=incoming.stock, quantity=wanted)
        return CartTransition(_replace_item(state, merged), Notice("Cart updated"))

    if incoming.stock < 1:
        raise StockLimitExceeded(incoming.product, action.quantity, incoming.stock)
    added = incoming.with_quantity(min(action.quantity, incoming.stock))
    return CartTransition(
        replace(state, items=state.items + (added,)), Notice("Added to cart")
    )


def _update_quantity(state: CartState, action: UpdateQuantity) -> CartTransition:
    item = state.find(action.product_id)
    if item is None:
        return CartTransition(state)
    if action.quantity > item.stock:
        raise StockLimitExceeded(item.product, action.quantity, item.stock)
    if action.quantity < 1:
        return CartTransition(
            _without(state, action.product_id), Notice("Removed from cart")
        )
    return CartTransition(_replace_item(state, item.with_quantity(action.quantity)))


def reduce_cart(state: CartState, action: CartAction) -> CartTransition:
    if isinstance(action, AddToCart):
        return _add(state, action)

    if isinstance(action, RemoveFromCart):
        if state.find(action.product_id) is None:
            return CartTransition(state)
        return CartTransition(
            _without(state, action.product_id), Notice("Removed from cart")
        )

    if isinstance(action, UpdateQuantity):
        return _update_quantity(state, action)

    if isinstance(action, ClearCart):
        return CartTransition(replace(state, items=()))

    if isinstance(action, SetShippingInfo):
        return CartTransition(replace(state, shipping_info=action.info))

    if isinstance(action, ClearShippingInfo):
        return CartTransition(replace(state, shipping_info=None))

    raise TypeError(f"not a cart action: {action!r}")
