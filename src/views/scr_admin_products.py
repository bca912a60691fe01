from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label

from api import crud
from api.errors import ApiError
from api.schemas import Product, ProductFilters
from store.pricing import format_price
from utils.messages import ModeSwitchedMessage
from utils.pure import truncate
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_product_form import ProductFormModal


class AdminProductsScreen(BaseScreen):
    """
    Product catalogue management: search, create, edit and delete.
    """

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._products: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Input(id="input-search", placeholder="Search for product...")
            yield DataTable(id="table-admin-products")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Button("New", id="btn-new", variant="success")
            yield Button("Edit", id="btn-edit", variant="primary")
            yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Stock", "Reviews")
        self.query_one("#input-search", Input).focus()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_refresh(self) -> None:
        self.load_products()

    @on(Input.Changed, "#input-search")
    def handle_search(self) -> None:
        if self.page_idx != 1:
            self.page_idx = 1
        else:
            self.load_products()

    def watch_page_idx(self, old: int, new: int) -> None:
        self.load_products()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @work(exclusive=True)
    async def load_products(self) -> None:
        if not self.app.state.is_admin:
            return
        api = self.app.state.api
        limit = self.app.state.settings.page_size
        query = self.query_one("#input-search", Input).value.strip()
        try:
            if query:
                res = await crud.list_products(
                    api, ProductFilters(keyword=query, page=self.page_idx, limit=limit)
                )
            else:
                res = await crud.list_admin_products(api, self.page_idx, limit)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        table = self.query_one(DataTable)
        table.clear()
        self._products = {p.id: p for p in res.products}
        for p in res.products:
            table.add_row(
                p.id,
                truncate(p.name, 40),
                p.category,
                format_price(p.price),
                p.stock,
                p.num_of_reviews,
                key=p.id,
            )
        self.page_cnt = max(res.pages, 1)
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt

    def selected_product(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        if not table.row_count:
            return None
        return self._products.get(str(table.get_row_at(table.cursor_row)[0]))

    @on(Button.Pressed, "#btn-new")
    @work()
    async def handle_new(self) -> None:
        if await self.app.push_screen_wait(ProductFormModal()):
            self.load_products()

    @on(Button.Pressed, "#btn-edit")
    @work()
    async def handle_edit(self) -> None:
        prod = self.selected_product()
        if prod is None:
            self.notify("Select a product first.", severity="warning")
            return
        if await self.app.push_screen_wait(ProductFormModal(prod)):
            self.load_products()

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        prod = self.selected_product()
        if prod is None:
            self.notify("Select a product first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete {prod.name}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await crud.delete_product(self.app.state.api, prod.id)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify("Product deleted.")
        self.load_products()
