from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

from api import crud
from api.errors import ApiError, NotFoundError
from api.schemas import Order, OrderStatus
from store.pricing import format_price
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_date
from views.base_screen import BaseScreen
from views.scr_past_orders import order_markdown


class AdminOrdersScreen(BaseScreen):
    """
    All orders, with detail and status update.
    """

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._selected: Optional[Order] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Select(
                [(s.value, s) for s in OrderStatus], prompt="Status", id="sel-status"
            )
            yield Button("Update Status", id="btn-status", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Customer", "Total", "Status")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(NewOrderMessage)
    def handle_refresh(self) -> None:
        self._load_orders()

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_orders()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            self._load_detail(event.row_key.value)

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        if not self.app.state.is_admin:
            return
        try:
            res = await crud.list_admin_orders(
                self.app.state.api, self.page_idx, self.app.state.settings.page_size
            )
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        table = self.query_one(DataTable)
        table.clear()
        for o in res.orders:
            table.add_row(
                o.id,
                format_date(o.created_at),
                o.user or "-",
                format_price(o.total_price),
                o.order_status.value,
                key=o.id,
            )
        self.page_cnt = max(res.pages, 1)
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        if not res.orders:
            self._render_detail(None)

    @work(exclusive=True, group="detail")
    async def _load_detail(self, order_id: str) -> None:
        try:
            order = await crud.get_admin_order(self.app.state.api, order_id)
        except NotFoundError:
            self.notify("Order not found.", severity="warning")
            self._render_detail(None)
            return
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self._render_detail(order)

    def _render_detail(self, order: Optional[Order]) -> None:
        self._selected = order
        md = order_markdown(order) if order else "### Select an order to view its details."
        self.query_one("#md-order-detail", MarkdownViewer).document.update(md)
        if order is not None:
            self.query_one("#sel-status", Select).value = order.order_status
        self.query_one("#btn-status", Button).disabled = order is None

    @on(Button.Pressed, "#btn-status")
    @work(exclusive=True, group="status")
    async def handle_status(self) -> None:
        order = self._selected
        status = self.query_one("#sel-status", Select).value
        if order is None or status is Select.BLANK:
            return
        if status == order.order_status:
            self.notify("Status unchanged.", severity="warning")
            return
        try:
            updated = await crud.update_order_status(self.app.state.api, order.id, status)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify(f"Order #{order.id} is now {updated.order_status.value}.")
        self._render_detail(updated)
        self._load_orders()
