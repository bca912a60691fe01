from __future__ import annotations

from typing import Callable, List, Optional, Union

from api.schemas import ShippingInfo
from store.cart import CART_ACTIONS, CartAction, reduce_cart
from store.models import CartItem, CartState, Notice, SessionState, Snapshot
from store.session import SESSION_ACTIONS, SessionAction, reduce_session
from utils.logger import get_logger

_logger = get_logger(__name__)

Action = Union[CartAction, SessionAction]
Listener = Callable[[Snapshot, Snapshot], None]


class AppStore:
    """
    The single owner of cart and session state.

    ``dispatch`` is the only way to change it. Listeners registered with
    ``subscribe`` are told about every change with the previous and the new
    snapshot; persistence hangs off that hook.
    """

    def __init__(
        self,
        cart: Optional[CartState] = None,
        session: Optional[SessionState] = None,
    ):
        self._snapshot = Snapshot(cart or CartState(), session or SessionState())
        self._listeners: List[Listener] = []

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def cart(self) -> CartState:
        return self._snapshot.cart

    @property
    def session(self) -> SessionState:
        return self._snapshot.session

    def dispatch(self, action: Action) -> Optional[Notice]:
        """
        Apply ``action``. Returns the notice to show, if any.
        Raises ``StockLimitExceeded`` for rejected cart changes, in which case
        nothing changes and no listener runs.
        """
        previous = self._snapshot
        notice = None
        if isinstance(action, CART_ACTIONS):
            transition = reduce_cart(previous.cart, action)
            current = Snapshot(transition.state, previous.session)
            notice = transition.notice
        elif isinstance(action, SESSION_ACTIONS):
            current = Snapshot(previous.cart, reduce_session(previous.session, action))
        else:
            raise TypeError(f"unknown action: {action!r}")

        _logger.debug(f"dispatch {type(action).__name__}")
        if current != previous:
            self._snapshot = current
            self._notify(previous, current)
        return notice

    def hydrate(
        self,
        items: Optional[List[CartItem]] = None,
        shipping_info: Optional[ShippingInfo] = None,
        token: Optional[str] = None,
    ) -> None:
        """Load persisted state at startup. Listeners are not notified."""
        cart = CartState(tuple(items or ()), shipping_info)
        session = SessionState(token=token or None, loading=bool(token))
        self._snapshot = Snapshot(cart, session)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, previous: Snapshot, current: Snapshot) -> None:
        for listener in list(self._listeners):
            listener(previous, current)
