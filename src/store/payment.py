# card confirmation against the payment processor
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from store.forms import CardForm
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    status: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded" and self.error is None


class PaymentGateway(Protocol):
    async def confirm_card_payment(
        self, client_secret: str, card: CardForm
    ) -> PaymentResult: ...


def intent_id_from_secret(client_secret: str) -> str:
    return client_secret.split("_secret_", 1)[0]


class StripeGateway:
    """
    Confirms a payment intent the way Stripe's browser SDK does: the
    publishable key plus the intent's client secret, card details attached
    as ``payment_method_data``.
    """

    def __init__(
        self,
        publishable_key: str,
        api_base: str = "https://api.stripe.com/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._key = publishable_key
        self._http = httpx.AsyncClient(
            base_url=api_base.rstrip("/"), timeout=timeout, transport=transport
        )

    async def confirm_card_payment(
        self, client_secret: str, card: CardForm
    ) -> PaymentResult:
        intent_id = intent_id_from_secret(client_secret)
        data = {
            "key": self._key,
            "client_secret": client_secret,
            "payment_method_data[type]": "card",
            "payment_method_data[card][number]": card.number,
            "payment_method_data[card][exp_month]": str(card.exp_month),
            "payment_method_data[card][exp_year]": str(card.exp_year),
            "payment_method_data[card][cvc]": card.cvc,
        }
        try:
            response = await self._http.post(
                f"/payment_intents/{intent_id}/confirm", data=data
            )
        except httpx.HTTPError as e:
            _logger.warning(f"payment confirmation for {intent_id} failed: {e!r}")
            return PaymentResult("failed", "Could not reach the payment processor.")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = (body.get("error") or {}).get("message") or "Payment failed"
            return PaymentResult("failed", message)

        status = body.get("status", "unknown")
        if status != "succeeded":
            return PaymentResult(status, f"Payment not completed ({status}).")
        return PaymentResult(status)

    async def aclose(self) -> None:
        await self._http.aclose()
