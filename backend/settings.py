from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    app_name: str = "WhatsApp Padel Sync API"

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # WhatsApp provider (AdWhats)
    whatsapp_api_token: str = ""
    whatsapp_api_url: str = "https://api.adwhats.net"
    whatsapp_account_id: Optional[int] = None
    whatsapp_webhook_token: str = ""
    whatsapp_timeout_seconds: float = 15.0
    whatsapp_send_concurrency: int = 3

    # Redis (duplicate webhook suppression)
    redis_url: Optional[str] = None

    # Payments
    frontend_url: str = "http://localhost:5173"
    payment_amount: float = 15.0
    payment_currency: str = "EUR"

    # App
    match_timezone: str = "Asia/Riyadh"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


class WhatsAppConfig(BaseModel):
    """Provider settings handed to the outbound sender at construction."""

    api_token: str = ""
    api_url: str = "https://api.adwhats.net"
    account_id: Optional[int] = None
    timeout_seconds: float = 15.0
    send_concurrency: int = 3
    match_timezone: str = "Asia/Riyadh"

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppConfig":
        return cls(
            api_token=settings.whatsapp_api_token,
            api_url=settings.whatsapp_api_url,
            account_id=settings.whatsapp_account_id,
            timeout_seconds=settings.whatsapp_timeout_seconds,
            send_concurrency=settings.whatsapp_send_concurrency,
            match_timezone=settings.match_timezone,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
