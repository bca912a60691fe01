from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Static

from api.schemas import Order
from store.checkout import CheckoutFlow, CheckoutStep
from store.errors import (
    CheckoutRedirect,
    OrderCreationFailed,
    PaymentFailed,
    ValidationError,
)
from store.forms import CardForm, validate_form
from store.pricing import PriceBreakdown, format_price
from utils.messages import CartChangedMessage
from utils.pure import generate_markdown_table
from views.scr_login import mark_invalid

SHIPPING_FIELDS = [
    ("address", "Address", "123 Main St"),
    ("city", "City", "Springfield"),
    ("postal_code", "Postal Code", "12345"),
    ("phone_no", "Phone No", "5551234567"),
    ("country", "Country", "United States"),
]


def totals_rows(totals: PriceBreakdown):
    t = totals.rounded()
    return [
        ["Items", format_price(t.subtotal)],
        ["Shipping", "Free" if t.free_shipping else format_price(t.shipping_price)],
        ["Tax", format_price(t.tax_price)],
        ["**Total**", f"**{format_price(t.total_price)}**"],
    ]


class CheckoutStepModal(ModalScreen[CheckoutStep]):
    """
    One checkout step. Dismisses with the step the user asked for next; the
    caller runs it through the flow's guard.
    """

    STEP: CheckoutStep
    BACK: CheckoutStep

    def __init__(self, flow: CheckoutFlow):
        super().__init__()
        self.flow = flow

    def on_mount(self) -> None:
        self.check_entry()

    @on(CartChangedMessage)
    def check_entry(self) -> None:
        # a placed order empties the cart; the pay handler dismisses itself
        if self.flow.order is not None or not self.is_current:
            return
        landed = self.flow.enter(self.STEP)
        if landed != self.STEP:
            self.dismiss(landed)
            return
        self.render_step()

    def render_step(self) -> None:
        pass

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(self.BACK)

    def on_input_changed(self, message: Input.Changed) -> None:
        message.input.remove_class("-invalid")

    @on(Button.Pressed, "#btn-back")
    def handle_back(self):
        self.dismiss(self.BACK)


class ShippingModal(CheckoutStepModal):
    STEP = CheckoutStep.SHIPPING
    BACK = CheckoutStep.CART

    def compose(self) -> ComposeResult:
        with Vertical(id="div-shipping"):
            yield Label("Shipping Info", id="label-step-title")
            for name, label, placeholder in SHIPPING_FIELDS:
                yield Label(label)
                yield Input(
                    placeholder=placeholder, id="input-ship-" + name.replace("_", "-")
                )
            with Horizontal():
                yield Button("Back to Cart", id="btn-back")
                yield Button("Continue", id="btn-submit", variant="primary")

    def render_step(self) -> None:
        # prefill from the saved address
        info = self.flow.store.cart.shipping_info
        if info is not None:
            for name, _, _ in SHIPPING_FIELDS:
                self.query_one(
                    "#input-ship-" + name.replace("_", "-"), Input
                ).value = getattr(info, name)
        self.query_one("#input-ship-address").focus()

    @on(Button.Pressed, "#btn-submit")
    def handle_submit(self):
        fields = {
            name: self.query_one("#input-ship-" + name.replace("_", "-"), Input).value
            for name, _, _ in SHIPPING_FIELDS
        }
        try:
            step = self.flow.submit_shipping(**fields)
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-ship-")
            self.notify(str(e), severity="error")
            return
        self.dismiss(step)


class ConfirmOrderModal(CheckoutStepModal):
    STEP = CheckoutStep.CONFIRM
    BACK = CheckoutStep.SHIPPING

    def compose(self) -> ComposeResult:
        with Vertical(id="div-confirm"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Horizontal():
                yield Button("Edit Shipping", id="btn-back")
                yield Button("Proceed to Payment", id="btn-submit", variant="primary")

    def render_step(self) -> None:
        cart = self.flow.store.cart
        info = cart.shipping_info
        md = "### Confirm Order\n\n#### Shipping\n\n"
        md += (
            f"{info.address}, {info.city} {info.postal_code}, {info.country}  \n"
            f"Phone: {info.phone_no}\n\n#### Items\n\n"
        )
        md += generate_markdown_table(
            ["Product", "Unit Price", "Qty", "Line Total"],
            [
                [i.name, format_price(i.price), i.quantity, format_price(i.line_total)]
                for i in cart.items
            ],
            ["l", "r", "c", "r"],
        )
        md += "\n\n#### Summary\n\n"
        md += generate_markdown_table(["", ""], totals_rows(self.flow.totals), ["l", "r"])
        self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#btn-submit").focus()

    @on(Button.Pressed, "#btn-submit")
    def handle_submit(self):
        self.dismiss(CheckoutStep.PAYMENT)


class PaymentModal(CheckoutStepModal):
    STEP = CheckoutStep.PAYMENT
    BACK = CheckoutStep.CONFIRM

    def compose(self) -> ComposeResult:
        with Vertical(id="div-payment"):
            yield Label("", id="label-pay-total")
            yield Label("Card Number")
            yield Input(placeholder="4242 4242 4242 4242", id="input-card-number")
            with Horizontal():
                yield Input(placeholder="MM", id="input-card-exp-month", type="integer")
                yield Input(placeholder="YY", id="input-card-exp-year", type="integer")
                yield Input(placeholder="CVC", password=True, id="input-card-cvc")
            yield Static("", id="static-pay-error")
            with Horizontal():
                yield Button("Back", id="btn-back")
                yield Button("Pay", id="btn-pay", variant="success")

    def render_step(self) -> None:
        total = self.flow.totals.rounded().total_price
        self.query_one("#label-pay-total", Label).update(f"Pay {format_price(total)}")
        self.query_one("#input-card-number").focus()

    def show_error(self, message: str) -> None:
        error = self.query_one("#static-pay-error", Static)
        error.update(message)
        error.add_class("-error")

    @on(Button.Pressed, "#btn-pay")
    @work(exclusive=True)
    async def handle_pay(self):
        try:
            card = validate_form(
                CardForm,
                number=self.query_one("#input-card-number", Input).value,
                exp_month=self.query_one("#input-card-exp-month", Input).value,
                exp_year=self.query_one("#input-card-exp-year", Input).value,
                cvc=self.query_one("#input-card-cvc", Input).value,
            )
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-card-")
            self.show_error(str(e))
            return

        pay_btn = self.query_one("#btn-pay", Button)
        pay_btn.disabled = True
        pay_btn.label = "Processing..."
        try:
            await self.flow.pay(card)
        except CheckoutRedirect as e:
            self.dismiss(e.step)
            return
        except (PaymentFailed, OrderCreationFailed) as e:
            self.show_error(str(e))
            return
        finally:
            pay_btn.disabled = False
            pay_btn.label = "Pay"

        self.dismiss(CheckoutStep.SUCCESS)


class OrderSuccessModal(ModalScreen[bool]):
    def __init__(self, order: Order):
        super().__init__()
        self.order = order

    def compose(self) -> ComposeResult:
        with Vertical(id="div-success"):
            yield Label("Your order has been placed successfully!", id="caption")
            yield Label(f"Order ID: {self.order.id}")
            yield Label(f"Total: {format_price(self.order.total_price)}")
            with Horizontal():
                yield Button("Continue Shopping", id="btn-done", variant="primary")
                yield Button("View Orders", id="btn-orders")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-done")
    def handle_done(self):
        self.dismiss(False)
        self.app.go("prod_search")

    @on(Button.Pressed, "#btn-orders")
    def handle_orders(self):
        self.dismiss(True)
        self.app.go("orders")
