from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, Markdown, TabbedContent, TabPane

from api import crud
from api.errors import ApiError
from store.errors import ValidationError
from store.forms import PasswordResetForm, ProfileForm, validate_form
from store.session import UpdateProfile
from utils.messages import ModeSwitchedMessage
from utils.pure import format_date, generate_markdown_table
from views.base_screen import BaseScreen
from views.scr_login import mark_invalid


class ProfileScreen(BaseScreen):
    """
    Account details, profile edit and password change. Requires login.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-profile"):
            with TabPane("My Profile", id="tab-profile"):
                yield Markdown("", id="md-profile")
            with TabPane("Edit Profile", id="tab-edit-profile"):
                with Vertical(id="div-profile"):
                    yield Label("Name")
                    yield Input(id="input-profile-name")
                    yield Label("Email")
                    yield Input(id="input-profile-email")
                    with Horizontal():
                        yield Button("Save", id="btn-save-profile", variant="primary")
            with TabPane("Change Password", id="tab-password"):
                with Vertical(id="div-change-password"):
                    yield Label("Current password")
                    yield Input(password=True, id="input-pw-old-password")
                    yield Label("New password")
                    yield Input(password=True, id="input-pw-password")
                    yield Label("Confirm new password")
                    yield Input(password=True, id="input-pw-confirm-password")
                    with Horizontal():
                        yield Button("Update Password", id="btn-save-password", variant="primary")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    async def handle_refresh(self) -> None:
        user = self.app.state.user
        if user is None:
            await self.query_one("#md-profile", Markdown).update("_Not logged in._")
            return
        rows = [
            ["Name", user.name],
            ["Email", user.email],
            ["Role", user.role],
            ["Joined", format_date(user.created_at)],
        ]
        await self.query_one("#md-profile", Markdown).update(
            "### My Profile\n\n" + generate_markdown_table(["", ""], rows, ["l", "l"])
        )
        self.query_one("#input-profile-name", Input).value = user.name
        self.query_one("#input-profile-email", Input).value = user.email

    async def on_mount(self) -> None:
        await self.handle_refresh()

    def on_input_changed(self, message: Input.Changed) -> None:
        message.input.remove_class("-invalid")

    @on(Button.Pressed, "#btn-save-profile")
    @work(exclusive=True)
    async def handle_save_profile(self) -> None:
        try:
            form = validate_form(
                ProfileForm,
                name=self.query_one("#input-profile-name", Input).value,
                email=self.query_one("#input-profile-email", Input).value,
            )
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-profile-")
            self.notify(str(e), severity="error")
            return

        try:
            user = await crud.update_profile(self.app.state.api, form.name, form.email)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        self.app.state.store.dispatch(
            UpdateProfile({"name": user.name, "email": user.email})
        )
        self.notify("Profile updated.")
        await self.handle_refresh()

    @on(Button.Pressed, "#btn-save-password")
    @work(exclusive=True)
    async def handle_save_password(self) -> None:
        old = self.query_one("#input-pw-old-password", Input)
        if not old.value:
            mark_invalid(self, {"old_password": ""}, "input-pw-")
            self.notify("Current password is required.", severity="error")
            return
        try:
            form = validate_form(
                PasswordResetForm,
                password=self.query_one("#input-pw-password", Input).value,
                confirm_password=self.query_one("#input-pw-confirm-password", Input).value,
            )
        except ValidationError as e:
            mark_invalid(self, e.errors, "input-pw-")
            self.notify(str(e), severity="error")
            return

        try:
            await crud.update_password(self.app.state.api, old.value, form.password)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        for input_ in self.query("#div-change-password Input"):
            input_.value = ""
        self.notify("Password updated.")
