from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, MarkdownViewer

from api import crud
from api.errors import ApiError, NotFoundError
from api.schemas import Product
from utils.pure import generate_markdown_table, stars
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


class AdminReviewsScreen(BaseScreen):
    """
    Look up a product by id and remove its reviews.
    """

    def __init__(self) -> None:
        super().__init__()
        self._product: Optional[Product] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-controls"):
                yield Input(id="input-product-id", placeholder="Product ID")
                yield Button("Search", id="btn-search", variant="primary")
                yield Button("Delete Reviews", id="btn-delete", variant="error", disabled=True)
            yield MarkdownViewer(
                "Enter a product id to see its reviews.",
                id="md-reviews",
                show_table_of_contents=False,
            )

    def on_mount(self) -> None:
        self.query_one("#input-product-id").focus()

    def on_input_submitted(self, message: Input.Submitted) -> None:
        self.handle_search()

    @on(Button.Pressed, "#btn-search")
    @work(exclusive=True)
    async def handle_search(self) -> None:
        product_id = self.query_one("#input-product-id", Input).value.strip()
        if not product_id:
            self.query_one("#input-product-id", Input).add_class("-invalid")
            return
        try:
            prod = await crud.get_product(self.app.state.api, product_id)
        except NotFoundError:
            self._render(None, "Product not found.")
            return
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self._render(prod)

    def _render(self, prod: Optional[Product], empty_text: str = "") -> None:
        self._product = prod
        if prod is None:
            md = f"### {empty_text}"
        else:
            md = f"### Reviews of {prod.name}\n\n"
            md += generate_markdown_table(
                ["User", "Name", "Rating", "Comment"],
                [[r.user, r.name or "-", stars(r.rating), r.comment] for r in prod.reviews],
                ["l", "l", "c", "l"],
            ) or "_No reviews._"
        self.query_one("#md-reviews", MarkdownViewer).document.update(md)
        self.query_one("#btn-delete", Button).disabled = not (prod and prod.reviews)

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True, group="delete")
    async def handle_delete(self) -> None:
        prod = self._product
        if prod is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete all {len(prod.reviews)} reviews of {prod.name}?",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await crud.delete_reviews_admin(self.app.state.api, prod.id)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify("Reviews deleted.")
        self.handle_search()
