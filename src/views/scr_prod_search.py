from decimal import Decimal, InvalidOperation
from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label, Select

from api import crud
from api.errors import ApiError
from api.schemas import PRODUCT_CATEGORIES, ProductFilters
from store.pricing import format_price
from utils.pure import stars, truncate
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

RATING_OPTIONS = [(f"{n}★ & up", n) for n in (4, 3, 2, 1)]


def _decimal_or_none(text: str) -> Optional[Decimal]:
    try:
        return Decimal(text) if text.strip() else None
    except InvalidOperation:
        return None


class ProdSearchScreen(BaseScreen):
    """
    Product search with category / price / rating filters. Open to guests.
    """

    # shown in the footer only
    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self):
        super().__init__()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Input(id="input-search", placeholder="Start typing to search products...")
        with Horizontal(id="hort-filters"):
            yield Select(
                [(c, c) for c in PRODUCT_CATEGORIES], prompt="Any category", id="sel-category"
            )
            yield Input(placeholder="min $", id="input-min-price", type="number")
            yield Input(placeholder="max $", id="input-max-price", type="number")
            yield Select(RATING_OPTIONS, prompt="Any rating", id="sel-rating")
        yield DataTable(id="table-search-result")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Label("", id="label-total")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Stock", "Rating")

        self.query_one("#input-search").focus()
        self.update_search_result()

    def current_filters(self) -> ProductFilters:
        category = self.query_one("#sel-category", Select).value
        rating = self.query_one("#sel-rating", Select).value
        return ProductFilters(
            keyword=self.query_one("#input-search", Input).value.strip() or None,
            category=None if category is Select.BLANK else category,
            min_price=_decimal_or_none(self.query_one("#input-min-price", Input).value),
            max_price=_decimal_or_none(self.query_one("#input-max-price", Input).value),
            min_rating=None if rating is Select.BLANK else rating,
            page=self.page_idx,
            limit=self.app.state.settings.page_size,
        )

    @on(Input.Changed)
    @on(Select.Changed)
    def handle_filter_change(self) -> None:
        if self.page_idx != 1:
            self.page_idx = 1  # the watcher reloads
        else:
            self.update_search_result()

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            self.open_product(str(table.get_row_at(table.cursor_row)[0]))

    @work()
    async def open_product(self, product_id: str) -> None:
        await self.app.push_screen_wait(ProdDetailModal(product_id))

    def watch_page_idx(self, _, new_page_idx):
        self.query_one("#label-page", Label).update(f"{new_page_idx} / {self.page_cnt}")
        self.update_search_result()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @work(exclusive=True)
    async def update_search_result(self) -> None:
        table = self.query_one(DataTable)
        try:
            res = await crud.list_products(self.app.state.api, self.current_filters())
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        table.clear()
        for p in res.products:
            table.add_row(
                p.id,
                truncate(p.name, 40),
                p.category,
                format_price(p.price),
                p.stock if p.stock else "out of stock",
                stars(p.ratings),
            )
        self.page_cnt = max(res.pages, 1)
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#label-total", Label).update(f"  {res.total} products")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
