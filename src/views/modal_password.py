from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from api import crud
from api.errors import ApiError
from store.errors import ValidationError
from store.forms import PasswordResetForm, validate_form


class ForgotPasswordModal(ModalScreen[bool]):
    """
    Two steps: request the reset email, then paste the token from it together
    with the new password. Returns True once the password was reset.
    """

    def __init__(self, email: str = "") -> None:
        super().__init__()
        self._email = email

    def compose(self) -> ComposeResult:
        with Vertical(id="div-password"):
            yield Label("Email")
            yield Input(value=self._email, placeholder="user@example.com", id="input-email")
            yield Button("Send reset email", id="btn-send", variant="primary")
            yield Label("Reset token (from the email)")
            yield Input(id="input-token")
            yield Label("New password")
            yield Input(password=True, id="input-password")
            yield Label("Confirm password")
            yield Input(password=True, id="input-confirm-password")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Reset password", id="btn-reset", variant="success")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-send")
    @work(exclusive=True)
    async def handle_send(self) -> None:
        email = self.query_one("#input-email", Input).value.strip()
        if not email:
            self.query_one("#input-email", Input).add_class("-invalid")
            self.notify("Email is required.", severity="error")
            return
        try:
            res = await crud.forgot_password(self.app.state.api, email)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify(res.message or "Password reset email sent.")
        self.query_one("#input-token").focus()

    @on(Button.Pressed, "#btn-reset")
    @work(exclusive=True)
    async def handle_reset(self) -> None:
        token = self.query_one("#input-token", Input).value.strip()
        if not token:
            self.query_one("#input-token", Input).add_class("-invalid")
            self.notify("Reset token is required.", severity="error")
            return
        try:
            form = validate_form(
                PasswordResetForm,
                password=self.query_one("#input-password", Input).value,
                confirm_password=self.query_one("#input-confirm-password", Input).value,
            )
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        try:
            await crud.reset_password(
                self.app.state.api, token, form.password, form.confirm_password
            )
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self.notify("Password reset successful. You can log in now.")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
