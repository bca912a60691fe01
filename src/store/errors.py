from typing import Dict


class StockLimitExceeded(Exception):
    """A cart change asked for more units than the stock snapshot allows."""

    def __init__(self, product_id: str, requested: int, stock: int):
        self.product_id = product_id
        self.requested = requested
        self.stock = stock
        if stock < 1:
            message = "This product is out of stock."
        else:
            message = f"Cannot exceed stock limit ({stock} available)."
        super().__init__(message)


class ValidationError(Exception):
    """
    Form input rejected before anything is sent.
    ``errors`` maps field name to a human readable message.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()) or "Invalid input")


class CheckoutRedirect(Exception):
    """
    A checkout step was entered without meeting its guard.
    ``step`` is where the flow landed instead; not shown to the user.
    """

    def __init__(self, step):
        self.step = step
        super().__init__(f"redirected to {getattr(step, 'value', step)}")


class PaymentFailed(Exception):
    """The card payment was declined or could not be confirmed."""


class OrderCreationFailed(Exception):
    """
    The payment went through but the order could not be recorded.
    ``payment_intent_id`` identifies the captured charge.
    """

    def __init__(self, message: str, payment_intent_id: str):
        self.payment_intent_id = payment_intent_id
        super().__init__(message)
