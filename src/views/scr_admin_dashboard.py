import asyncio

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from api import crud
from api.errors import ApiError
from store.pricing import format_price
from utils.messages import ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_date, generate_markdown_table
from views.base_screen import BaseScreen


class AdminDashboardScreen(BaseScreen):
    """
    Sales overview: order counts by status and revenue, plus the latest orders
    and the products running low on stock.
    """

    LOW_STOCK = 5

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)
            yield Button("Refresh", id="btn-refresh", variant="primary")

    def on_mount(self) -> None:
        self.handle_reload()

    @on(Button.Pressed, "#btn-refresh")
    @on(NewOrderMessage)
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        if not self.app.state.is_admin:
            return
        api = self.app.state.api
        try:
            stats, orders, products = await asyncio.gather(
                crud.get_sales_stats(api),
                crud.list_admin_orders(api, 1, 5),
                crud.list_admin_products(api, 1, 50),
            )
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        md = "### Sales Overview\n\n"
        md += generate_markdown_table(
            ["Metric", "Value"],
            [
                ["Total Orders", stats.total_orders],
                ["Total Sales", format_price(stats.total_sales)],
                ["Average Order Value", format_price(stats.average_order_value)],
                ["Processing", stats.processing_orders],
                ["Delivered", stats.delivered_orders],
                ["Cancelled", stats.cancelled_orders],
            ],
            ["l", "r"],
        )

        md += "\n\n### Recent Orders\n\n"
        md += generate_markdown_table(
            ["Order ID", "Date", "Total", "Status"],
            [
                [
                    o.id,
                    format_date(o.created_at),
                    format_price(o.total_price),
                    o.order_status.value,
                ]
                for o in orders.orders
            ],
            ["l", "l", "r", "c"],
        ) or "_No orders yet._"

        low = [p for p in products.products if p.stock <= self.LOW_STOCK]
        md += f"\n\n### Low Stock (≤ {self.LOW_STOCK})\n\n"
        md += generate_markdown_table(
            ["Product", "Stock"],
            [[p.name, p.stock] for p in low],
            ["l", "r"],
        ) or "_All products are well stocked._"

        self.query_one("#md-dashboard", MarkdownViewer).document.update(md)
