from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Database (SQLite by default)
    database_url: str = "sqlite+aiosqlite:///./chatqc.db"

    # LiveChat API
    livechat_base_url: str = "https://livechat.systemtest.store"
    livechat_api_key: str | None = None

    # Telegram Bot API (both required to relay alerts)
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None

    # Sync pipeline
    sync_page_size: int = 100
    sync_batch_size: int = 50
    sync_page_delay_seconds: float = 0.1
    sync_default_window_minutes: int = 20
    sync_max_days: int = Field(
        default=90,
        description="Upper bound for the `days` shorthand",
    )

    # Outbound HTTP
    http_max_attempts: int = 3
    http_retry_delay_seconds: float = 1.0
    http_timeout_seconds: float = 30.0

    # Scheduler
    sync_scheduler_enabled: bool = False
    sync_interval_seconds: int = 60
    alert_delivery_interval_seconds: int = 300
    alert_delivery_batch_size: int = 10

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
