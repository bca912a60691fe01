from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from api import crud
from api.cache import QueryCache
from api.client import ApiClient
from api.errors import ApiError, AuthorizationError
from store.app_store import AppStore
from store.checkout import CheckoutFlow
from store.payment import PaymentGateway, StripeGateway
from store.persistence import LocalStorage, PersistenceObserver
from store.pricing import PricingPolicy
from store.session import Logout, SetCredentials, SetLoading, SetUser
from utils.config import Settings, get_settings
from utils.logger import get_logger

_logger = get_logger(__name__)

LOGIN_LOCATION = "login"


@dataclass
class GlobalState:
    """
    Everything screens share, handed to them through ``app.state``.

    Fields:
      - store: cart + session (the only mutable client state)
      - api: HTTP client + server-state cache
      - storage: local persistence for token and cart
      - navigate: callback the app installs to switch screens by location
      - location: callback returning the current location name
    """

    settings: Settings
    store: AppStore
    api: crud.Api
    storage: LocalStorage
    navigate: Optional[Callable[[str], None]] = None
    location: Callable[[], Optional[str]] = lambda: None
    gateway: Optional[PaymentGateway] = None
    _persistence: Optional[PersistenceObserver] = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        transport=None,
    ) -> GlobalState:
        settings = settings or get_settings()
        store = AppStore()
        client = ApiClient(
            settings.api_base_url,
            token_getter=lambda: store.session.token,
            timeout=settings.request_timeout,
            transport=transport,
        )
        state = cls(
            settings=settings,
            store=store,
            api=crud.Api(client, QueryCache()),
            storage=LocalStorage(settings.data_path),
        )
        client.on_unauthorized = state.handle_unauthorized
        return state

    # ---------------------------
    # Session lifecycle
    # ---------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.store.session.is_authenticated

    @property
    def is_admin(self) -> bool:
        return self.store.session.is_admin

    @property
    def user(self):
        return self.store.session.user

    async def restore_session(self) -> None:
        """
        Load the saved cart and token, then confirm the token with ``/auth/me``.
        Persistence starts observing only after the saved state is loaded.
        """
        cart, token = await self.storage.restore()
        self.store.hydrate(list(cart.items), cart.shipping_info, token)
        if self._persistence is None:
            self._persistence = PersistenceObserver(self.store, self.storage)

        if not token:
            return
        try:
            user = await crud.get_current_user(self.api)
        except AuthorizationError:
            # handle_unauthorized already cleared the session
            _logger.info("Saved session is no longer valid.")
            return
        except ApiError as e:
            _logger.warning(f"Could not restore session: {e.message}")
            self.store.dispatch(SetLoading(False))
            return
        self.store.dispatch(SetUser(user))
        _logger.info(f"Session restored for {user.email}")

    async def login(self, email: str, password: str):
        res = await crud.login(self.api, email, password)
        self.store.dispatch(SetCredentials(res.user, res.token))
        return res.user

    async def register(self, name: str, email: str, password: str):
        res = await crud.register(self.api, name, email, password)
        self.store.dispatch(SetCredentials(res.user, res.token))
        return res.user

    async def end_session(self) -> None:
        """Log out. The local session is cleared even if the API call fails."""
        if self.is_authenticated:
            try:
                await crud.logout(self.api)
            except ApiError as e:
                _logger.warning(f"Logout request failed: {e.message}")
        self.store.dispatch(Logout())
        self.api.cache.clear()

    def handle_unauthorized(self) -> None:
        """
        Called by the HTTP client on a 401: drop the session and the cache,
        then send the user to login unless they are already there.
        """
        had_session = self.is_authenticated or self.store.session.loading
        self.store.dispatch(Logout())
        self.api.cache.clear()
        if not had_session:
            return
        if self.location() == LOGIN_LOCATION:
            return
        if self.navigate is not None:
            self.navigate(LOGIN_LOCATION)

    # ---------------------------
    # Checkout
    # ---------------------------

    def pricing_policy(self) -> PricingPolicy:
        return PricingPolicy.from_settings(self.settings)

    async def payment_gateway(self) -> PaymentGateway:
        if self.gateway is None:
            key = await crud.get_stripe_key(self.api)
            self.gateway = StripeGateway(key, self.settings.stripe_api_base)
        return self.gateway

    async def new_checkout(self) -> CheckoutFlow:
        try:
            gateway = await self.payment_gateway()
        except ApiError as e:
            _logger.warning(f"Payment key unavailable: {e.message}")
            gateway = None
        return CheckoutFlow(
            self.store,
            self.api,
            gateway,
            self.pricing_policy(),
            self.settings.currency,
        )

    async def aclose(self) -> None:
        if self._persistence is not None:
            await self._persistence.flush()
            self._persistence.close()
        await self.storage.aclose()
        await self.api.client.aclose()
        if isinstance(self.gateway, StripeGateway):
            await self.gateway.aclose()
