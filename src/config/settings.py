"""Application settings using Pydantic Settings."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Telegram Bot API
    telegram_bot_token: str = Field(default="", description="Telegram bot token from @BotFather")
    telegram_api_base: str = Field(default="https://api.telegram.org", description="Bot API base URL")
    telegram_parse_mode: str = Field(default="Markdown", description="parse_mode for outgoing messages")
    telegram_timeout_seconds: float = Field(default=30.0, description="Bot API request timeout")
    telegram_webhook_secret: str = Field(default="", description="Expected X-Telegram-Bot-Api-Secret-Token header")
    admin_chat_id: str = Field(default="", description="Chat that receives new payment notifications")

    # Payment instructions shown in the invoice
    payment_card_label: str = Field(default="Uzcard", description="Card network label")
    payment_card_number: str = Field(default="", description="Card number customers transfer to")
    payment_card_holder: str = Field(default="", description="Card holder name")
    support_contact: str = Field(default="", description="Support contact appended to apology messages")

    # Order store backend: "supabase" (REST) or "sql" (SQLAlchemy)
    order_store: str = Field(default="supabase", description="Order store backend")

    # Supabase configuration
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_key: str = Field(default="", description="Supabase service role key")

    # Supabase PostgreSQL direct connection (optional, for SQLAlchemy)
    supabase_user: str = Field(default="postgres", description="Supabase PostgreSQL user")
    supabase_password: str = Field(default="", description="Supabase PostgreSQL password")
    supabase_host: str = Field(default="", description="Supabase PostgreSQL host")
    supabase_port: int = Field(default=5432, description="Supabase PostgreSQL port")
    supabase_db: str = Field(default="postgres", description="Supabase PostgreSQL database name")
    database_url: str = Field(default="", description="Full SQLAlchemy URL, overrides supabase_* parts")

    # Database settings
    database_echo: bool = Field(default=False, description="Echo SQL queries")
    environment: str = Field(default="development", description="Environment (development, production, test)")

    # Payment proof storage (Supabase Storage bucket). Empty = keep Telegram file URL
    screenshot_bucket: str = Field(default="", description="Storage bucket for payment screenshots")

    # Reconciliation behaviour
    webhook_paused: bool = Field(default=False, description="Initial pause state when no state file exists")
    pause_state_file: str = Field(default="", description="JSON file holding the pause flag; empty = in-memory")
    suppress_duplicate_notifications: bool = Field(
        default=False,
        description="Skip confirmation messages for an update_id already confirmed"
    )

    # HTTP API
    api_host: str = Field(default="0.0.0.0", description="Bind host for the webhook API")
    api_port: int = Field(default=8000, description="Bind port for the webhook API")
    cors_allow_origins: str = Field(default="*", description="Comma-separated origins of the admin panel")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    @property
    def log_secrets(self) -> List[str]:
        """Values masked in every log sink."""
        return [s for s in (self.telegram_bot_token, self.supabase_key, self.supabase_password) if s]

    @property
    def sqlalchemy_url(self) -> str:
        """SQLAlchemy URL for the direct database connection, empty if not configured."""
        if self.database_url:
            return self.database_url
        if not self.supabase_password or not self.supabase_host:
            return ""
        return (
            f"postgresql+asyncpg://"
            f"{self.supabase_user}:"
            f"{self.supabase_password}@"
            f"{self.supabase_host}:"
            f"{self.supabase_port}/"
            f"{self.supabase_db}"
        )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
