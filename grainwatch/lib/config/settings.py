"""Settings models and configuration loading for the grainwatch application."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from grainwatch.lib.config.constants import (
    ALERT_COOLDOWN_SEC,
    COOLDOWN_COMPACTION_THRESHOLD,
    HISTORY_CAPACITY,
    HISTORY_MAX_DEVICES,
)
from grainwatch.lib.config.enums import AlertStoreBackend, NotificationBackend


def _parse_bool(v: Any) -> bool:
    """Parse boolean the way the device firmware docs describe it.

    Anything other than an explicit false value counts as enabled.
    """
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() not in ("0", "false", "no", "off")
    return bool(v)


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]


class ThresholdSettings(BaseModel):
    """Default alert thresholds seeded into the runtime threshold store."""

    model_config = ConfigDict(frozen=True)

    temperature_high: float = 35
    temperature_low: float = 15
    humidity_high: float = 70
    humidity_low: float = 30
    motion_detection: bool = True


class TelegramSettings(BaseModel):
    """Telegram bot notification settings."""

    model_config = ConfigDict(frozen=True)

    bot_token: SecretStr = SecretStr("")
    chat_ids: tuple[str, ...] = ()
    api_url: str = "https://api.telegram.org"


class SlackSettings(BaseModel):
    """Slack notification settings."""

    model_config = ConfigDict(frozen=True)

    webhook_url: _HttpUrlOrEmpty = ""


class NotificationSettings(BaseModel):
    """Notification service settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    backends: list[NotificationBackend] = []
    telegram: TelegramSettings = TelegramSettings()
    slack: SlackSettings = SlackSettings()
    max_retries: int = 1
    initial_backoff_sec: int = 2
    timeout_sec: int = 10


class AlertSettings(BaseModel):
    """Alert deduplication settings."""

    model_config = ConfigDict(frozen=True)

    cooldown_sec: float = ALERT_COOLDOWN_SEC
    compaction_threshold: int = COOLDOWN_COMPACTION_THRESHOLD


class HistorySettings(BaseModel):
    """In-memory reading history settings."""

    model_config = ConfigDict(frozen=True)

    capacity: int = HISTORY_CAPACITY
    max_devices: int = HISTORY_MAX_DEVICES


class AlertStoreSettings(BaseModel):
    """Alert audit store settings."""

    model_config = ConfigDict(frozen=True)

    backend: AlertStoreBackend = AlertStoreBackend.NONE
    db_path: str = "grainwatch.sqlite3"
    db_timeout_sec: float = 30.0
    memory_capacity: int = 500


class ServerSettings(BaseModel):
    """Web server settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = []


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Thresholds (DHT22 bounds: temp -40 to 80, humidity 0 to 100)
    temp_high_threshold: float = Field(default=35, ge=-40, le=80)
    temp_low_threshold: float = Field(default=15, ge=-40, le=80)
    humidity_high_threshold: float = Field(default=70, ge=0, le=100)
    humidity_low_threshold: float = Field(default=30, ge=0, le=100)
    motion_detection: _BoolFromStr = True

    # Alerts
    alert_cooldown_sec: float = Field(default=ALERT_COOLDOWN_SEC, ge=0)
    history_capacity: int = Field(default=HISTORY_CAPACITY, ge=1)
    history_max_devices: int = Field(default=HISTORY_MAX_DEVICES, ge=1)

    # Notifications
    enable_notification_service: _BoolFromStr = False
    notification_backends: str = "telegram"
    telegram_bot_token: SecretStr = SecretStr("")
    telegram_chat_ids: str = ""  # Comma-separated list
    slack_webhook_url: _HttpUrlOrEmpty = ""
    notification_max_retries: int = Field(default=1, ge=1)
    notification_initial_backoff_sec: int = Field(default=2, ge=0)
    notification_timeout_sec: int = Field(default=10, ge=1)

    # Alert store
    alert_store: AlertStoreBackend = AlertStoreBackend.NONE
    db_path: str = "grainwatch.sqlite3"
    db_timeout_sec: float = Field(default=30.0, gt=0)
    alert_store_capacity: int = Field(default=500, ge=1)

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, le=65535)
    cors_origins: str = ""  # Comma-separated list

    @cached_property
    def thresholds(self) -> ThresholdSettings:
        """Get threshold defaults as nested object."""
        return ThresholdSettings(
            temperature_high=self.temp_high_threshold,
            temperature_low=self.temp_low_threshold,
            humidity_high=self.humidity_high_threshold,
            humidity_low=self.humidity_low_threshold,
            motion_detection=self.motion_detection,
        )

    @cached_property
    def notifications(self) -> NotificationSettings:
        """Get notification settings as nested object."""
        return NotificationSettings(
            enabled=self.enable_notification_service,
            backends=[
                NotificationBackend(b)
                for b in _split_csv(self.notification_backends)
            ],
            telegram=TelegramSettings(
                bot_token=self.telegram_bot_token,
                chat_ids=tuple(_split_csv(self.telegram_chat_ids)),
            ),
            slack=SlackSettings(webhook_url=self.slack_webhook_url),
            max_retries=self.notification_max_retries,
            initial_backoff_sec=self.notification_initial_backoff_sec,
            timeout_sec=self.notification_timeout_sec,
        )

    @cached_property
    def alerts(self) -> AlertSettings:
        """Get alert deduplication settings."""
        return AlertSettings(cooldown_sec=self.alert_cooldown_sec)

    @cached_property
    def history(self) -> HistorySettings:
        """Get history buffer settings."""
        return HistorySettings(
            capacity=self.history_capacity,
            max_devices=self.history_max_devices,
        )

    @cached_property
    def alert_store_settings(self) -> AlertStoreSettings:
        """Get alert store settings."""
        return AlertStoreSettings(
            backend=self.alert_store,
            db_path=self.db_path,
            db_timeout_sec=self.db_timeout_sec,
            memory_capacity=self.alert_store_capacity,
        )

    @cached_property
    def server(self) -> ServerSettings:
        """Get web server settings."""
        return ServerSettings(
            host=self.host,
            port=self.port,
            cors_origins=_split_csv(self.cors_origins),
        )

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        # Cross-field comparisons (individual bounds handled by Field constraints)
        if self.temp_low_threshold >= self.temp_high_threshold:
            errors.append(
                f"TEMP_LOW_THRESHOLD ({self.temp_low_threshold}) must be less "
                f"than TEMP_HIGH_THRESHOLD ({self.temp_high_threshold})"
            )

        if self.humidity_low_threshold >= self.humidity_high_threshold:
            errors.append(
                f"HUMIDITY_LOW_THRESHOLD ({self.humidity_low_threshold}) must "
                f"be less than HUMIDITY_HIGH_THRESHOLD "
                f"({self.humidity_high_threshold})"
            )

        backends = _split_csv(self.notification_backends)
        valid = {b.value for b in NotificationBackend}
        invalid = [b for b in backends if b not in valid]
        if invalid:
            errors.append(f"Unknown NOTIFICATION_BACKENDS: {', '.join(invalid)}")

        # Notification credential checks
        if self.enable_notification_service:
            if NotificationBackend.TELEGRAM in backends:
                missing = []
                if not self.telegram_bot_token.get_secret_value():
                    missing.append("TELEGRAM_BOT_TOKEN")
                if not _split_csv(self.telegram_chat_ids):
                    missing.append("TELEGRAM_CHAT_IDS")
                if missing:
                    errors.append(
                        f"Telegram enabled but missing: {', '.join(missing)}"
                    )

            if NotificationBackend.SLACK in backends:
                if not self.slack_webhook_url:
                    errors.append(
                        "Slack enabled but SLACK_WEBHOOK_URL is not set"
                    )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from grainwatch.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
