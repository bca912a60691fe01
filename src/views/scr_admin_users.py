from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, Select

from api import crud
from api.errors import ApiError
from api.schemas import User
from utils.messages import ModeSwitchedMessage
from utils.pure import format_date
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal

ROLE_OPTIONS = [("Customer", "user"), ("Admin", "admin")]


class AdminUsersScreen(BaseScreen):
    """
    User accounts: change role or delete.
    """

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._users: Dict[str, User] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-users")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Select(ROLE_OPTIONS, prompt="Role", id="sel-role")
            yield Button("Update Role", id="btn-role", variant="primary")
            yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Email", "Role", "Joined")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_refresh(self) -> None:
        self._load_users()

    def watch_page_idx(self, old: int, new: int) -> None:
        self._load_users()

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
        user = self._users.get(event.row_key.value) if event.row_key else None
        if user is not None:
            self.query_one("#sel-role", Select).value = user.role

    @work(exclusive=True)
    async def _load_users(self) -> None:
        if not self.app.state.is_admin:
            return
        try:
            res = await crud.list_admin_users(
                self.app.state.api, self.page_idx, self.app.state.settings.page_size
            )
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        table = self.query_one(DataTable)
        table.clear()
        self._users = {u.id: u for u in res.users}
        for u in res.users:
            table.add_row(u.id, u.name, u.email, u.role, format_date(u.created_at), key=u.id)
        self.page_cnt = max(res.pages, 1)
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt

    def selected_user(self) -> Optional[User]:
        table = self.query_one(DataTable)
        if not table.row_count:
            return None
        return self._users.get(str(table.get_row_at(table.cursor_row)[0]))

    @on(Button.Pressed, "#btn-role")
    @work(exclusive=True, group="mutate")
    async def handle_role(self) -> None:
        user = self.selected_user()
        role = self.query_one("#sel-role", Select).value
        if user is None or role is Select.BLANK:
            self.notify("Select a user and a role first.", severity="warning")
            return
        if role == user.role:
            self.notify("Role unchanged.", severity="warning")
            return
        try:
            updated = await crud.update_user(self.app.state.api, user.id, role=role)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify(f"{updated.name} is now {updated.role}.")
        self._load_users()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True, group="mutate")
    async def handle_delete(self) -> None:
        user = self.selected_user()
        if user is None:
            self.notify("Select a user first.", severity="warning")
            return
        me = self.app.state.user
        if me is not None and me.id == user.id:
            self.notify("You cannot delete your own account here.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete user {user.email}?",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await crud.delete_user(self.app.state.api, user.id)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify("User deleted.")
        self._load_users()
