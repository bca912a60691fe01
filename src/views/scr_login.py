from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from api.errors import ApiError
from store.errors import ValidationError
from store.forms import LoginForm, RegisterForm, validate_form
from views.base_screen import BaseScreen
from views.modal_password import ForgotPasswordModal


def mark_invalid(screen, errors: dict, prefix: str) -> None:
    """Flag the inputs named in ``errors`` and focus the first one."""
    first = None
    for field in errors:
        matches = screen.query(f"#{prefix}{field.replace('_', '-')}")
        if not matches:
            continue
        widget = matches.first()
        widget.add_class("-invalid")
        first = first or widget
    if first is not None:
        first.focus()


class LoginScreen(BaseScreen):
    """
    Login / sign-up. Dismisses with True once a session exists, False if the
    user backs out.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-login-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-password"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Back", id="btn-back")
                        yield Button("Forgot password", id="btn-forgot")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Name")
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="at least 6 characters",
                        password=True,
                        id="input-reg-password",
                    )
                    with Container(id="div-reg-btns"):
                        yield Button("Register", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-email").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "escape":
            self.dismiss(False)
        if event.key == "enter" and self.focused == self.query_one("#input-login-password"):
            self.handle_login_submit()
        if event.key == "enter" and self.focused == self.query_one("#input-reg-password"):
            self.handle_registration_submit()

    def on_input_changed(self, message: Input.Changed) -> None:
        message.input.remove_class("-invalid")

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        try:
            form = validate_form(
                LoginForm,
                email=self.query_one("#input-login-email", Input).value,
                password=self.query_one("#input-login-password", Input).value,
            )
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-login-")
            self.notify(str(e), severity="error")
            return

        try:
            user = await self.app.state.login(form.email, form.password)
        except ApiError as e:
            self.notify(e.message or "Invalid email or password.", severity="error")
            input_password = self.query_one("#input-login-password", Input)
            input_password.value = ""
            input_password.focus()
            input_password.add_class("-invalid")
            return

        self.notify(f"Welcome back, {user.name}!")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        try:
            form = validate_form(
                RegisterForm,
                name=self.query_one("#input-reg-name", Input).value,
                email=self.query_one("#input-reg-email", Input).value,
                password=self.query_one("#input-reg-password", Input).value,
            )
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-reg-")
            self.notify(str(e), severity="error")
            return

        try:
            user = await self.app.state.register(form.name, form.email, form.password)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        self.notify(f"Registration successful. Welcome, {user.name}!")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-forgot")
    @work()
    async def handle_forgot(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        await self.app.push_screen_wait(ForgotPasswordModal(email))

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.dismiss(False)
