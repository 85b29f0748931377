from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration, read once from the environment (and .env if present).

    Payment and CDN credentials are optional: when absent, the matching
    endpoint answers 503 instead of the whole service refusing to start.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    # Public site origin, used for payment redirect URLs
    SITE_URL: Optional[str] = None

    # BTCPay Server (Greenfield API)
    BTCPAY_SERVER_URL: Optional[str] = None
    BTCPAY_STORE_ID: Optional[str] = None
    BTCPAY_API_KEY: Optional[str] = None
    BTCPAY_WEBHOOK_SECRET: Optional[str] = None
    BTCPAY_CURRENCY: str = "USD"

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_PUBLISHABLE_KEY: Optional[str] = None

    # Bunny.net storage + pull zone
    BUNNY_API_KEY: Optional[str] = None
    BUNNY_STORAGE_ZONE: Optional[str] = None
    BUNNY_CDN_URL: Optional[str] = None
    BUNNY_STORAGE_ENDPOINT: str = "storage.bunnycdn.com"

    # Admin gate; auth is disabled when ADMIN_PASSWORD is blank
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_SECRET: Optional[str] = None

    @property
    def btcpay_configured(self) -> bool:
        return bool(self.BTCPAY_SERVER_URL and self.BTCPAY_STORE_ID and self.BTCPAY_API_KEY)

    @property
    def bunny_configured(self) -> bool:
        return bool(self.BUNNY_API_KEY and self.BUNNY_STORAGE_ZONE)

    @property
    def admin_auth_enabled(self) -> bool:
        return bool((self.ADMIN_PASSWORD or "").strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
