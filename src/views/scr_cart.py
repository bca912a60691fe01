from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Markdown, Rule

from store.cart import ClearCart, RemoveFromCart, UpdateQuantity
from store.checkout import CheckoutStep
from store.errors import StockLimitExceeded
from store.models import CartItem
from store.pricing import amount_to_free_shipping, compute_totals, format_price
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_checkout import (
    ConfirmOrderModal,
    OrderSuccessModal,
    PaymentModal,
    ShippingModal,
)
from views.modal_dialog import DialogModal
from views.modal_prod_detail import ProdDetailModal
from views.scr_login import LoginScreen

STEP_SCREENS = {
    CheckoutStep.SHIPPING: ShippingModal,
    CheckoutStep.CONFIRM: ConfirmOrderModal,
    CheckoutStep.PAYMENT: PaymentModal,
}


class CartItemActionEditMessage(Message):
    bubble = True


class CartItemActionRemoveMessage(Message):
    bubble = True


class CartItemActionLabel(Label):
    def action_edit(self):
        self.post_message(CartItemActionEditMessage())

    def action_remove(self):
        self.post_message(CartItemActionRemoveMessage())


class CartItemWidget(HorizontalGroup):
    def __init__(self, item: CartItem):
        super().__init__()
        self.item = item

    def compose(self):
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.item.name, id="label-item-name")
                yield Button("-", id="btn-item-sub", disabled=self.item.quantity <= 1)
                yield Label(str(self.item.quantity), id="label-item-qty")
                yield Button(
                    "+",
                    id="btn-item-add",
                    disabled=self.item.quantity >= self.item.stock,
                )
                yield Label(
                    f"{format_price(self.item.price)} x {self.item.quantity} = "
                    f"{format_price(self.item.line_total)}",
                    id="label-item-price",
                )
            with Container(id="div-actions"):
                yield CartItemActionLabel("[@click=edit()]Details[/]", id="link-item-edit")
                yield CartItemActionLabel(
                    "[@click=remove()]Remove[/]", id="link-item-remove"
                )

    def set_quantity(self, quantity: int) -> None:
        try:
            notice = self.app.state.store.dispatch(
                UpdateQuantity(self.item.product, quantity)
            )
        except StockLimitExceeded as e:
            self.notify(str(e), severity="error")
            return
        if notice is not None:
            self.notify(notice.message, severity=notice.severity)

    @on(Button.Pressed, "#btn-item-add")
    def handle_add(self):
        self.set_quantity(self.item.quantity + 1)

    @on(Button.Pressed, "#btn-item-sub")
    def handle_sub(self):
        self.set_quantity(self.item.quantity - 1)

    @on(CartItemActionEditMessage)
    @work()
    async def handle_edit_item(self):
        await self.app.push_screen_wait(ProdDetailModal(self.item.product))

    @on(CartItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if remove_confirmed:
            notice = self.app.state.store.dispatch(RemoveFromCart(self.item.product))
            if notice is not None:
                self.notify(notice.message, severity=notice.severity)


class CartScreen(BaseScreen):
    """
    Cart lines with quantity controls, the running totals and the entry
    point to checkout.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Markdown("", id="md-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # must be exclusive, else two refreshes mount duplicates
    async def handle_cart_change(self):
        cart = self.app.state.store.cart

        content = self.query_one("#vertscroll-content")
        if [c.item for c in content.children] != list(cart.items):
            await content.remove_children()
            await content.mount_all([CartItemWidget(item) for item in cart.items])

        if cart.is_empty:
            content.add_class("no-items")
        else:
            content.remove_class("no-items")
        self.query_one("#btn-checkout").disabled = cart.is_empty

        await self.query_one("#md-cart-total", Markdown).update(self.totals_markdown())

    def totals_markdown(self) -> str:
        cart = self.app.state.store.cart
        if cart.is_empty:
            return "**Your cart is empty.** Browse products to add some."

        policy = self.app.state.pricing_policy()
        totals = compute_totals(cart.items, policy)
        rows = [
            ["Items", f"{cart.item_count} (units)"],
            ["Subtotal", format_price(totals.subtotal)],
            [
                "Shipping",
                "Free" if totals.free_shipping else format_price(totals.shipping_price),
            ],
            ["Tax", format_price(totals.tax_price)],
            ["Total", format_price(totals.total_price)],
        ]
        md = generate_markdown_table(["", ""], rows, ["l", "r"])
        if not totals.free_shipping:
            gap = amount_to_free_shipping(totals.subtotal, policy)
            md += (
                f"\n\nSpend more than {format_price(policy.free_shipping_threshold)} "
                f"for free shipping ({format_price(gap)} to go)."
            )
        return md

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if self.app.state.store.cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            self.app.state.store.dispatch(ClearCart())

    @on(Button.Pressed, "#btn-checkout")
    @work(exclusive=True, group="checkout")
    async def handle_checkout(self) -> None:
        """
        Walk the checkout steps. Each step screen dismisses with the step to
        go to next; the flow's guard decides where that actually lands.
        """
        state = self.app.state
        if state.store.cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return
        if not state.is_authenticated:
            self.app.notify("Please log in to check out.", severity="warning")
            if not await self.app.push_screen_wait(LoginScreen()):
                return

        flow = await state.new_checkout()
        step = flow.enter(CheckoutStep.SHIPPING)
        while step in STEP_SCREENS:
            requested = await self.app.push_screen_wait(STEP_SCREENS[step](flow))
            step = flow.enter(requested)

        if step == CheckoutStep.SUCCESS:
            order_id = flow.order.id
            self.app.broadcast(lambda: NewOrderMessage(order_id))
            await self.app.push_screen_wait(OrderSuccessModal(flow.order))
