from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user asks to log out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired after login, registration or session restore so screens can refresh
    """

    bubble = True


class SessionExpiredMessage(Message):
    """
    Posted at App level when the API rejected the token.
    The session is already cleared; the app sends the user to login.
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a cart action was dispatched.
    The app broadcasts it to every screen on the stack after a store change.
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Broadcast by the app when an order is placed.
    Listened to by order lists and the admin dashboard.
    """

    bubble = True

    def __init__(self, order_id: str = "") -> None:
        super().__init__()
        self.order_id = order_id


class ModeSwitchedMessage(Message):
    """
    fired whenever the app switches mode
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
