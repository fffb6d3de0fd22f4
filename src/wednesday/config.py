"""Configuration system using pydantic-settings with environment variable loading."""

from datetime import time, timedelta, timezone

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramSettings(BaseSettings):
    """Telegram bot credentials."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    token: SecretStr = SecretStr("")
    bot_name: str = "wednesday_bot"
    admin_chat_id: int | None = None  # receives heartbeat messages when set


class StorageSettings(BaseSettings):
    """Relational store and cache store locations."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    db_path: str = "data/wednesday.db"
    redis_url: str = "redis://localhost:6379/0"
    dominance_ttl_seconds: int = 20 * 60


class ApiSettings(BaseSettings):
    """Upstream price API access."""

    model_config = SettingsConfigDict(env_prefix="API_")

    request_timeout: float = 10.0
    retry_attempts: int = 3
    retry_delay: float = 1.0  # flat, no backoff growth
    coinmarketcap_api_key: SecretStr = SecretStr("")


class SchedulerSettings(BaseSettings):
    """Timer rules and worker queue.

    All wall-clock times are interpreted in a fixed UTC offset, not the
    host's local zone.
    """

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    utc_offset_hours: int = 3
    tick_seconds: float = 30.0
    queue_size: int = 16
    weekly_weekday: int = 2  # Monday=0, so Wednesday
    weekly_time: time = time(9, 0)
    report_times: list[time] = [time(6, 0), time(18, 0)]
    heartbeat_interval_seconds: int = 3600

    @field_validator("weekly_weekday")
    @classmethod
    def _check_weekday(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError("weekly_weekday must be in 0..6")
        return value

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset_hours))


class DeliverySettings(BaseSettings):
    """Broadcast delivery tuning."""

    model_config = SettingsConfigDict(env_prefix="DELIVERY_")

    network_retry_delay: float = 10.0
    max_send_attempts: int = 5  # per chat, across rate limits and network errors


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    telegram: TelegramSettings = TelegramSettings()
    storage: StorageSettings = StorageSettings()
    api: ApiSettings = ApiSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    delivery: DeliverySettings = DeliverySettings()
