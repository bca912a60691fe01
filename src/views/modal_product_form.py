from typing import Dict, Optional

from pydantic import ValidationError as SchemaError
from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, Select, TextArea

from api import crud
from api.errors import ApiError
from api.schemas import PRODUCT_CATEGORIES, Product, ProductImage, ProductInput
from views.scr_login import mark_invalid

PRODUCT_MESSAGES = {
    "name": "Name must be at least 3 characters",
    "price": "Price must be a number ≥ 0",
    "description": "Description must be at least 10 characters",
    "category": "Pick a category",
    "seller": "Seller is required",
    "stock": "Stock must be a whole number ≥ 0",
    "images": "At least one image URL is required",
}


def product_errors(e: SchemaError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in e.errors():
        field = str(err["loc"][0]) if err["loc"] else "name"
        errors.setdefault(field, PRODUCT_MESSAGES.get(field, err["msg"]))
    return errors


class ProductFormModal(ModalScreen[Optional[Product]]):
    """
    Create a product, or edit ``product`` when given.
    Returns the saved product, or None if cancelled.
    """

    def __init__(self, product: Optional[Product] = None) -> None:
        super().__init__()
        self._product = product

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="div-product-form"):
            yield Label("Edit Product" if self._product else "New Product", id="caption")
            yield Label("Name")
            yield Input(id="input-prod-name")
            with Horizontal():
                with Vertical():
                    yield Label("Price ($)")
                    yield Input(
                        id="input-prod-price", type="number", validators=[Number(minimum=0)]
                    )
                with Vertical():
                    yield Label("Stock")
                    yield Input(
                        id="input-prod-stock", type="integer", validators=[Number(minimum=0)]
                    )
            yield Label("Category")
            yield Select(
                [(c, c) for c in PRODUCT_CATEGORIES], prompt="Category", id="input-prod-category"
            )
            yield Label("Seller")
            yield Input(id="input-prod-seller")
            yield Label("Image URL")
            yield Input(placeholder="https://...", id="input-prod-images")
            yield Label("Description")
            yield TextArea(id="input-prod-description")
            with Horizontal():
                yield Button("Cancel", id="btn-quit")
                yield Button("Save", id="btn-save", variant="success")

    def on_mount(self) -> None:
        prod = self._product
        if prod is not None:
            self.query_one("#input-prod-name", Input).value = prod.name
            self.query_one("#input-prod-price", Input).value = str(prod.price)
            self.query_one("#input-prod-stock", Input).value = str(prod.stock)
            if prod.category in PRODUCT_CATEGORIES:
                self.query_one("#input-prod-category", Select).value = prod.category
            self.query_one("#input-prod-seller", Input).value = prod.seller
            self.query_one("#input-prod-images", Input).value = prod.image
            self.query_one("#input-prod-description", TextArea).text = prod.description
        self.query_one("#input-prod-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def on_input_changed(self, message: Input.Changed) -> None:
        message.input.remove_class("-invalid")

    def read_form(self) -> ProductInput:
        category = self.query_one("#input-prod-category", Select).value
        image = self.query_one("#input-prod-images", Input).value.strip()
        return ProductInput(
            name=self.query_one("#input-prod-name", Input).value.strip(),
            price=self.query_one("#input-prod-price", Input).value or "-1",
            stock=self.query_one("#input-prod-stock", Input).value or "-1",
            category="" if category is Select.BLANK else category,
            seller=self.query_one("#input-prod-seller", Input).value.strip(),
            description=self.query_one("#input-prod-description", TextArea).text.strip(),
            images=[ProductImage(image=image)] if image else [],
        )

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        try:
            product_input = self.read_form()
        except SchemaError as e:
            errors = product_errors(e)
            mark_invalid(self, errors, "input-prod-")
            self.notify("; ".join(errors.values()), severity="error")
            return

        api = self.app.state.api
        try:
            if self._product is None:
                saved = await crud.create_product(api, product_input)
                self.notify(f"Product {saved.name} created.")
            else:
                saved = await crud.update_product(api, self._product.id, product_input)
                self.notify(f"Product {saved.name} updated.")
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.dismiss(saved)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
