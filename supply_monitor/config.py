"""Application configuration using Pydantic Settings."""

import base64
import json
import logging
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from supply_monitor.errors import ConfigurationError
from supply_monitor.utils import is_valid_cell_address

logger = logging.getLogger(__name__)

DEFAULT_SHEETS_CONFIG_PATH = Path("config/sheets.json")

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


class Settings(BaseSettings):
    """Process settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sheet configuration sources (inline JSON wins over the file)
    sheets_config: str = ""
    sheets_config_path: Path = DEFAULT_SHEETS_CONFIG_PATH

    # Google service account
    google_service_account_key: str = ""  # base64-encoded JSON
    google_service_account_path: str = ""

    # Pacing and retry
    sheet_delay_seconds: float = 3.0
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0

    webhook_timeout: float = 30.0
    timezone: str = "America/New_York"

    # Application
    log_level: str = "INFO"
    log_redact: bool = False

    # Monitoring (Sentry)
    sentry_dsn: str = ""
    environment: str = "production"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("RETRY_MAX_ATTEMPTS must be >= 0")
        return v

    def get_google_credentials_info(self) -> dict:
        """Get Google service account credentials as dictionary."""
        if self.google_service_account_key:
            try:
                decoded = base64.b64decode(self.google_service_account_key)
                return json.loads(decoded)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"GOOGLE_SERVICE_ACCOUNT_KEY is not valid base64 JSON: {e}"
                ) from e

        if self.google_service_account_path:
            path = Path(self.google_service_account_path)
            if not path.exists():
                raise ConfigurationError(f"Service account file not found: {path}")
            return json.loads(path.read_text(encoding="utf-8"))

        raise ConfigurationError(
            "No Google Service Account credentials found. "
            "Set GOOGLE_SERVICE_ACCOUNT_KEY or GOOGLE_SERVICE_ACCOUNT_PATH"
        )


class SheetConfig(BaseModel):
    """One monitored spreadsheet and where to report on it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    sheet_id: str = Field(alias="sheetId", min_length=1)
    sheet_name: str | None = Field(default=None, alias="sheetName")
    current_supplies_cell: str = Field(alias="currentSuppliesCell", min_length=1)
    daily_consumption_cell: str = Field(alias="dailyConsumptionCell", min_length=1)
    webhook_url: str = Field(alias="webhookUrl", min_length=1)

    @field_validator("sheet_name")
    @classmethod
    def blank_sheet_name_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("current_supplies_cell", "daily_consumption_cell")
    @classmethod
    def validate_cell(cls, v: str) -> str:
        if not is_valid_cell_address(v):
            raise ValueError(f"invalid cell address: {v}")
        return v

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        try:
            _URL_ADAPTER.validate_python(v)
        except ValidationError:
            raise ValueError(f"invalid webhook URL: {v}") from None
        return v


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "record"
        if err["type"] == "missing":
            parts.append(f"missing required field: {loc}")
        else:
            parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_sheet_configs(raw: object) -> list[SheetConfig]:
    """Validate a decoded JSON document into an ordered list of SheetConfig."""
    if not isinstance(raw, list):
        raise ConfigurationError("Configuration must be an array of sheet configurations")
    if not raw:
        raise ConfigurationError("Configuration must contain at least one sheet configuration")

    configs: list[SheetConfig] = []
    for index, record in enumerate(raw):
        if not isinstance(record, dict):
            raise ConfigurationError(f"Sheet configuration {index} must be an object")
        try:
            configs.append(SheetConfig.model_validate(record))
        except ValidationError as e:
            raise ConfigurationError(
                f"Sheet configuration {index} is invalid: {_format_validation_error(e)}"
            ) from e

    logger.info("Configuration validation passed for %d sheets", len(configs))
    return configs


def load_sheet_configs(settings: Settings) -> list[SheetConfig]:
    """
    Load sheet configurations.

    Precedence:
    1. SHEETS_CONFIG (inline JSON)
    2. SHEETS_CONFIG_PATH (JSON file)
    """
    if settings.sheets_config.strip():
        logger.info("Loading configuration from environment variable")
        source = "SHEETS_CONFIG"
        text = settings.sheets_config
    else:
        path = settings.sheets_config_path.resolve()
        logger.info("Loading configuration from file: %s", path)
        source = str(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Configuration loading failed: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration loading failed: invalid JSON in {source}: {e}") from e

    return validate_sheet_configs(raw)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
