from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label

from utils.messages import UserLoginMessage
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal


class LoginScreen(BaseScreen):
    """
    Name-only login against the staff roster. Dismisses once a user is set on app state.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-login"):
            yield Label("Materials Room", id="label-login-title")
            yield Label("Your name")
            yield Input(placeholder="Alice", id="input-login-name")
            yield Label("", id="label-login-error")
            with Horizontal(id="div-login-btns"):
                yield Button("Quit", id="btn-quit")
                yield Button("Enter", id="btn-login", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-name").focus()

    @on(Input.Submitted, "#input-login-name")
    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        name_input = self.query_one("#input-login-name", Input)
        error_label = self.query_one("#label-login-error", Label)
        name = name_input.value.strip()

        if not name:
            error_label.update("Please enter your name.")
            name_input.add_class("-invalid")
            return

        user = await self.app.service.login(name)
        if user is None:
            error_label.update("Not found. Check the spelling of your name.")
            name_input.add_class("-invalid")
            name_input.focus()
            return

        self.app.state.start_session(user)
        name_input.value = ""
        name_input.remove_class("-invalid")
        error_label.update("")
        self.notify(f"Hello {user.name}!")
        self.app.post_message(UserLoginMessage())
        self.dismiss()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
