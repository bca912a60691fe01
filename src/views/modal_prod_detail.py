from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

from api import crud
from api.errors import ApiError, NotFoundError
from api.schemas import Product, ReviewInput
from pydantic import ValidationError as SchemaError
from store.cart import AddToCart, UpdateQuantity
from store.errors import StockLimitExceeded
from store.models import CartItem
from store.pricing import format_price
from utils.pure import format_date, generate_markdown_table, stars

REVIEW_RATINGS = [(stars(n), n) for n in (5, 4, 3, 2, 1)]


def product_markdown(prod: Product) -> str:
    rows = [
        ["Price", format_price(prod.price)],
        ["Category", prod.category],
        ["Seller", prod.seller],
        ["Stock", str(prod.stock) if prod.stock else "out of stock"],
        ["Rating", f"{stars(prod.ratings)} ({prod.num_of_reviews} reviews)"],
    ]
    md = f"### {prod.name}\n\n"
    md += generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
    if prod.description:
        md += f"\n\n{prod.description}\n"
    md += "\n\n#### Reviews\n\n"
    if not prod.reviews:
        md += "_No reviews yet._\n"
    for review in prod.reviews:
        md += f"- **{review.name or 'Anonymous'}** {stars(review.rating)}: {review.comment}\n"
    if prod.created_at:
        md += f"\n_Listed {format_date(prod.created_at)}_\n"
    return md


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail, quantity picker and reviews.
    Returns True if the cart changed.
    """

    order_qty = reactive(1)

    def __init__(self, product_id: str) -> None:
        super().__init__()

        self._product_id = product_id
        self._prod: Product = None
        self._existing_cart_item: CartItem = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("Loading...", show_table_of_contents=False)
            with Vertical(id="vert-prod-actions"):
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")
                yield Label("Your Review", id="label-review")
                yield Select(REVIEW_RATINGS, prompt="Rating", id="sel-review-rating")
                yield Input(placeholder="What did you think?", id="input-review-comment")
                with Horizontal():
                    yield Button("Delete my review", id="btn-del-review", variant="error")
                    yield Button("Submit Review", id="btn-review", variant="success")

    async def on_mount(self):
        await self.load_product()

    async def load_product(self) -> None:
        try:
            self._prod = await crud.get_product(self.app.state.api, self._product_id)
        except NotFoundError:
            self.app.notify("Product not found.", severity="error")
            self.dismiss(False)
            return
        except ApiError as e:
            self.app.notify(e.message, severity="error")
            self.dismiss(False)
            return

        await self.query_one(MarkdownViewer).document.update(product_markdown(self._prod))

        stock_cnt = self._prod.stock
        if stock_cnt < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(stock_cnt, 1))
        ]

        self._existing_cart_item = self.app.state.store.cart.find(self._product_id)
        if self._existing_cart_item:
            self.order_qty = self._existing_cart_item.quantity
            self.query_one("#btn-addcart", Button).label = "Update Cart"
        self.watch_order_qty(self.order_qty)

        user = self.app.state.user
        has_review = user is not None and any(r.user == user.id for r in self._prod.reviews)
        self.query_one("#btn-del-review").display = has_review

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    def on_input_changed(self, message: Input.Changed) -> None:
        message.input.remove_class("-invalid")
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int):
        if self._prod is None:
            return
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self):
        store = self.app.state.store
        if self._existing_cart_item:
            action = UpdateQuantity(self._product_id, self.order_qty)
        else:
            action = AddToCart(CartItem.from_product(self._prod), self.order_qty)
        try:
            notice = store.dispatch(action)
        except StockLimitExceeded as e:
            self.app.notify(str(e), severity="error")
            return

        if notice is not None:
            self.app.notify(notice.message, severity=notice.severity)
        self.dismiss(True)

    @on(Button.Pressed, "#btn-review")
    @work(exclusive=True)
    async def handle_review(self):
        if not self.app.state.is_authenticated:
            self.app.notify("Log in to write a review.", severity="warning")
            return

        rating = self.query_one("#sel-review-rating", Select).value
        comment = self.query_one("#input-review-comment", Input)
        try:
            review = ReviewInput(
                rating=0 if rating is Select.BLANK else rating,
                comment=comment.value.strip(),
            )
        except SchemaError as e:
            field = e.errors()[0]["loc"][0]
            if field == "rating":
                self.app.notify("Pick a rating from 1 to 5.", severity="error")
            else:
                comment.add_class("-invalid")
                self.app.notify(
                    "Comment must be at least 5 characters.", severity="error"
                )
            return

        try:
            await crud.create_review(self.app.state.api, self._product_id, review)
        except ApiError as e:
            self.app.notify(e.message, severity="error")
            return

        self.app.notify("Review submitted. Thank you!")
        comment.value = ""
        await self.load_product()

    @on(Button.Pressed, "#btn-del-review")
    @work(exclusive=True)
    async def handle_delete_review(self):
        try:
            await crud.delete_review(self.app.state.api, self._product_id)
        except ApiError as e:
            self.app.notify(e.message, severity="error")
            return
        self.app.notify("Review deleted.")
        await self.load_product()
