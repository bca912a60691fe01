from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.messages import ModeSwitchedMessage, UserLoginMessage, UserLogoutMessage
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal


class Sidebar(Container):
    def compose(self) -> ComposeResult:
        yield Label("Account", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log in", id="btn-login", variant="primary")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        await self.refresh_session()

    async def refresh_session(self) -> None:
        state = self.app.state
        session = state.store.session

        if session.is_authenticated and session.user is not None:
            rows = [
                ["Name", session.user.name],
                ["Email", session.user.email],
                ["Role", "Admin" if session.is_admin else "Customer"],
            ]
        else:
            rows = [["Guest", "not logged in"]]
        md_table_str = generate_markdown_table(None, rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        self.query_one("#btn-login").display = not session.is_authenticated
        self.query_one("#btn-logout").display = session.is_authenticated

        menu = dict(self.app.CUSTOMER_MODES)
        if session.is_admin:
            menu.update(self.app.ADMIN_MODES)

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [ListItem(Label(v), id="list-menu-item-" + k) for k, v in menu.items()]
        )
        self.highlight_item(self.app.current_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.app.current_mode)
        if self.app.current_mode != selected_mode:
            self.app.go(selected_mode)

    @on(Button.Pressed, "#btn-login")
    def handle_login(self):
        self.app.go_login(self.app.current_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all mode screens: header, footer, sidebar and common bindings.
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        self.app.title = self.app.state.settings.app_title
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v):
                self.sub_title = self.app.ADMIN_MODES.get(
                    k, self.app.CUSTOMER_MODES.get(k, header_sub_title)
                )

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @on(UserLoginMessage)
    @on(ModeSwitchedMessage)
    async def handle_session_change(self):
        if self._show_sidebar:
            await self.query_one(Sidebar).refresh_session()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
