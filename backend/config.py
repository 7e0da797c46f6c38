"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load secret fields from the OS keychain via ``keyring``.

    Only fields whose uppercase name is in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up;
    everything else falls through to the environment and ``.env``.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        return get_credential(env_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field_info, field_name)
            if value is not None:
                values[key] = value
        return values


class Settings(BaseSettings):
    """Application settings loaded from the keychain, environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./networth.db"

    # GoCardless Bank Account Data (aggregator)
    GOCARDLESS_SECRET_ID: str = ""
    GOCARDLESS_SECRET_KEY: str = ""
    GOCARDLESS_BASE_URL: str = "https://bankaccountdata.gocardless.com/api/v2"
    GOCARDLESS_TIMEOUT_SECONDS: float = 30.0
    GOCARDLESS_DAILY_REQUEST_LIMIT: int = 4

    # Scheduled batch sync
    CRON_SECRET: str = ""
    DAILY_SYNC_HOUR_UTC: int = 6
    BATCH_USER_DELAY_SECONDS: float = 1.0

    # Sync behaviour
    TRANSACTION_LOOKBACK_DAYS: int = 30
    SUMMARY_CURRENCY: str = "USD"

    # Base URL used to build the aggregator redirect (callback) URL.
    # Empty means "derive from the incoming request".
    APP_BASE_URL: str = ""

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("DAILY_SYNC_HOUR_UTC")
    @classmethod
    def validate_sync_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"DAILY_SYNC_HOUR_UTC must be between 0 and 23, got {v}")
        return v

    @field_validator("APP_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    @model_validator(mode="after")
    def require_cron_secret_in_production(self) -> "Settings":
        """The batch trigger must never run on an empty shared secret in production."""
        if self.ENVIRONMENT.lower() == "production" and not self.CRON_SECRET:
            raise ValueError("CRON_SECRET must be set when ENVIRONMENT=production")
        return self


settings = Settings()
