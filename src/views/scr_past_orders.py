from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer

from api import crud
from api.errors import ApiError, NotFoundError
from api.schemas import Order
from store.pricing import format_price
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_date, generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


def order_markdown(order: Order) -> str:
    info = order.shipping_info
    md = (
        f"### Order #{order.id}\n"
        f"Placed: {format_date(order.created_at)}  \n"
        f"Status: **{order.order_status.value}**  \n"
        f"Ship To: {info.address}, {info.city} {info.postal_code}, {info.country}  \n"
        f"Phone: {info.phone_no}\n\n"
    )
    if order.payment_info is not None:
        md += f"Payment: {order.payment_info.status} ({order.payment_info.id})\n\n"
    md += generate_markdown_table(
        ["Product", "Qty", "Unit Price", "Line Total"],
        [
            [i.name, i.quantity, format_price(i.price), format_price(i.price * i.quantity)]
            for i in order.order_items
        ],
        ["l", "c", "r", "r"],
    )
    md += "\n\n" + generate_markdown_table(
        ["", ""],
        [
            ["Items", format_price(order.items_price)],
            ["Shipping", format_price(order.shipping_price)],
            ["Tax", format_price(order.tax_price)],
            ["**Total**", f"**{format_price(order.total_price)}**"],
        ],
        ["l", "r"],
    )
    return md


class PastOrdersScreen(BaseScreen):
    """
    The customer's orders, newest first, with a detail view and cancel.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}
        self._selected: Optional[Order] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Button("Cancel Order", id="btn-cancel", variant="error", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Items", "Total", "Status")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders(self.page_idx)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value in self._orders:
            self._load_and_render_detail(event.row_key.value)

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_orders(new)

    def _refresh_buttons(self) -> None:
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#btn-cancel", Button).disabled = not (
            self._selected is not None and self._selected.cancellable
        )

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        if not self.app.state.is_authenticated:
            return
        try:
            res = await crud.list_my_orders(
                self.app.state.api, page, self.app.state.settings.page_size
            )
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        table = self.query_one(DataTable)
        table.clear()
        self._orders = {o.id: o for o in res.orders}
        for o in res.orders:
            table.add_row(
                o.id,
                format_date(o.created_at),
                sum(i.quantity for i in o.order_items),
                format_price(o.total_price),
                o.order_status.value,
                key=o.id,
            )
        self.page_cnt = max(res.pages, 1)
        if not res.orders:
            self._render_detail(None)
        self._refresh_buttons()

    @work(exclusive=True, group="detail")
    async def _load_and_render_detail(self, order_id: str) -> None:
        try:
            order = await crud.get_order(self.app.state.api, order_id)
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
        if order is None:
            md = "### No order selected.\n\nPlace an order and it will show up here."
        else:
            md = order_markdown(order)
        self.query_one("#md-order-detail", MarkdownViewer).document.update(md)
        self._refresh_buttons()

    @on(Button.Pressed, "#btn-cancel")
    @work(exclusive=True, group="cancel")
    async def handle_cancel(self) -> None:
        order = self._selected
        if order is None or not order.cancellable:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Cancel order #{order.id}?",
                primary_text="Yes, cancel",
                secondary_text="No",
                tone="error",
            )
        ):
            return
        try:
            updated = await crud.cancel_order(self.app.state.api, order.id)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify("Order cancelled.")
        self._render_detail(updated)
        self._load_orders(self.page_idx)
