from typing import Callable, Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import LoadingIndicator

from store.guards import GateDecision, gate
from store.models import Snapshot
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    ModeSwitchedMessage,
    QuitRequestedMessage,
    SessionExpiredMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import LOGIN_LOCATION, GlobalState
from views.scr_admin_dashboard import AdminDashboardScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_admin_products import AdminProductsScreen
from views.scr_admin_reviews import AdminReviewsScreen
from views.scr_admin_users import AdminUsersScreen
from views.scr_cart import CartScreen
from views.scr_login import LoginScreen
from views.scr_past_orders import PastOrdersScreen
from views.scr_prod_search import ProdSearchScreen
from views.scr_profile import ProfileScreen

_logger = get_logger(__name__)

HOME_MODE = "prod_search"


class SkyCartApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "prod_search": ProdSearchScreen,
        "cart": CartScreen,
        "orders": PastOrdersScreen,
        "profile": ProfileScreen,
        "admin_dashboard": AdminDashboardScreen,
        "admin_products": AdminProductsScreen,
        "admin_orders": AdminOrdersScreen,
        "admin_users": AdminUsersScreen,
        "admin_reviews": AdminReviewsScreen,
    }

    CUSTOMER_MODES = {
        "prod_search": "Search Products",
        "cart": "Cart",
        "orders": "My Orders",
        "profile": "Profile",
    }
    ADMIN_MODES = {
        "admin_dashboard": "Dashboard",
        "admin_products": "Manage Products",
        "admin_orders": "Manage Orders",
        "admin_users": "Manage Users",
        "admin_reviews": "Manage Reviews",
    }
    # customer modes that need a session
    PROTECTED_MODES = {"orders", "profile"}

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/search_prod.tcss",
        "styles/cart.tcss",
        "styles/checkout.tcss",
        "styles/orders.tcss",
        "styles/admin.tcss",
    ]

    state: GlobalState

    def __init__(self, state: Optional[GlobalState] = None):
        super().__init__()
        self.state = state or GlobalState.create()
        self.state.navigate = self.handle_navigate
        self.state.location = self.location
        self.state.store.subscribe(self.handle_store_change)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    def on_mount(self) -> None:
        self.main_flow()

    def location(self) -> Optional[str]:
        if isinstance(self.screen, LoginScreen):
            return LOGIN_LOCATION
        return self.current_mode

    def broadcast(self, make: Callable[[], Message]) -> None:
        """Post a fresh message to every screen on the current stack."""
        for screen in self.screen_stack:
            screen.post_message(make())

    def handle_store_change(self, previous: Snapshot, current: Snapshot) -> None:
        if previous.cart != current.cart:
            self.broadcast(CartChangedMessage)
        if previous.session != current.session:
            self.broadcast(UserLoginMessage)

    def handle_navigate(self, location: str) -> None:
        # only ever asked to go to login, on a rejected token
        if location == LOGIN_LOCATION:
            self.post_message(SessionExpiredMessage())

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    # ---------------------------
    # Navigation
    # ---------------------------

    def requires_login(self, mode: str) -> bool:
        return mode in self.PROTECTED_MODES or mode in self.ADMIN_MODES

    def go(self, mode: str) -> None:
        self.navigate_to(mode)

    def go_login(self, return_to: Optional[str] = None) -> None:
        self.login_flow(return_to)

    @work(exclusive=True, group="navigate")
    async def navigate_to(self, mode: str) -> None:
        if self.requires_login(mode):
            result = gate(
                self.state.store.session,
                requires_admin=mode in self.ADMIN_MODES,
                location=mode,
            )
            if result.decision == GateDecision.LOADING:
                self.notify("Still restoring your session, try again in a moment.")
                return
            if result.decision == GateDecision.LOGIN:
                if not await self.push_screen_wait(LoginScreen()):
                    return
                # the account may not have the rights for the page asked for
                result = gate(
                    self.state.store.session,
                    requires_admin=mode in self.ADMIN_MODES,
                    location=result.return_to,
                )
            if result.decision == GateDecision.HOME:
                self.notify("That page is for administrators only.", severity="warning")
                mode = HOME_MODE

        if mode == self.current_mode:
            return
        old_mode = self.current_mode
        await self.switch_mode(mode)
        _logger.debug(f"mode {old_mode} -> {mode}")
        self.broadcast(lambda: ModeSwitchedMessage(old_mode, mode))

    @work(exclusive=True, group="login")
    async def login_flow(self, return_to: Optional[str]) -> None:
        if await self.push_screen_wait(LoginScreen()):
            if return_to and return_to != self.current_mode:
                self.go(return_to)
        elif self.requires_login(self.current_mode):
            self.go(HOME_MODE)

    # ---------------------------
    # Session
    # ---------------------------

    @on(SessionExpiredMessage)
    def handle_session_expired(self):
        self.notify("Your session has expired. Please log in again.", severity="warning")
        self.go_login(self.current_mode)

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        await self.state.end_session()
        self.notify("Logout successful.")
        if self.requires_login(self.current_mode):
            self.go(HOME_MODE)

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.aclose()
        self.exit()

    @work
    async def main_flow(self):
        await self.state.restore_session()
        await self.switch_mode(HOME_MODE)
        if self.state.user is not None:
            self.notify(f"Welcome back, {self.state.user.name}!")


def main():
    SkyCartApp().run()


if __name__ == "__main__":
    main()
