from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from the environment (prefix ``SKYCART_``)
    or a local ``.env`` file.

    The pricing fields define the single shipping/tax policy used for every
    total shown in the client. The server's order totals stay authoritative
    for what is actually charged.
    """

    app_title: str = "SkyCart"

    api_base_url: str = "http://localhost:8000/api/v1"
    request_timeout: float = 15.0

    # local sqlite file holding the token and the persisted cart
    data_path: str = "data/skycart.sqlite"

    currency: str = "usd"
    free_shipping_threshold: Decimal = Decimal("100")
    flat_shipping_fee: Decimal = Decimal("10")
    tax_rate: Decimal = Decimal("0.10")

    stripe_api_base: str = "https://api.stripe.com/v1"

    page_size: int = 10

    model_config = SettingsConfigDict(
        env_prefix="SKYCART_", env_file=".env", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
