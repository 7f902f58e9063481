import json
import os
from pathlib import Path
from typing import Annotated
from urllib.parse import urlparse

import pydantic
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from ocrwatch.exceptions import ConfigError, ValidationError

CONFIG_FILE_ENV = "OCRWATCH_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config.json"

DEFAULT_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application configuration.

    Priority: init kwargs > environment > .env > config.json > defaults.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    app_env: str = "dev"
    log_level: str = "INFO"

    # config.json files written for the earlier release use camelCase keys.
    watch_folder: Path = Field(
        Path("~/Desktop"), validation_alias=AliasChoices("watch_folder", "watchFolder")
    )
    supported_image_extensions: Annotated[tuple[str, ...], NoDecode] = Field(
        DEFAULT_IMAGE_EXTENSIONS,
        validation_alias=AliasChoices("supported_image_extensions", "supportedImageExtensions"),
    )

    ocr_provider: str = "http"
    ocr_api_url: str = Field(
        "http://localhost:7321/api/v1/ocr",
        validation_alias=AliasChoices("ocr_api_url", "ocrApiUrl"),
    )
    health_check_url: str = Field(
        "http://localhost:7321/health",
        validation_alias=AliasChoices("health_check_url", "healthCheckUrl"),
    )
    language: str = "zh-CN"
    ocr_timeout_seconds: int = 30

    llm_provider: str = "workflow"
    local_llm_url: str = Field(
        "http://localhost/v1/workflows/run",
        validation_alias=AliasChoices("local_llm_url", "localLLMUrl"),
    )
    local_llm_api_key: str | None = Field(
        None, validation_alias=AliasChoices("local_llm_api_key", "localLLMApiKey")
    )
    llm_user: str = "answer-tips-user"
    llm_health_check_url: str | None = None
    llm_timeout_seconds: int = 60

    health_check_timeout_seconds: int = 5
    llm_health_check_timeout_seconds: int = 10

    # Accepted from existing config files; not enforced.
    max_retries: int = Field(3, validation_alias=AliasChoices("max_retries", "maxRetries"))
    retry_delay: int = Field(2000, validation_alias=AliasChoices("retry_delay", "retryDelay"))
    check_interval: int = Field(
        1000, validation_alias=AliasChoices("check_interval", "checkInterval")
    )

    stability_poll_interval_seconds: float = 0.5
    stability_threshold: int = 3
    stability_max_wait_seconds: float = 5.0
    watch_health_interval_seconds: float = 2.0

    ledger_capacity: int = 1000
    stats_report_interval_seconds: int = 30
    shutdown_grace_seconds: float = 5.0
    notifications_enabled: bool = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        config_file = Path(os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=config_file),
        )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(LOG_LEVELS)}")
        return level

    @field_validator("watch_folder", mode="before")
    @classmethod
    def _expand_watch_folder(cls, value: object) -> object:
        if isinstance(value, (str, Path)):
            if not str(value).strip():
                raise ValueError("watch_folder is required")
            return Path(value).expanduser()
        return value

    @field_validator("supported_image_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: object) -> object:
        if isinstance(value, str):
            value = [part for part in value.replace(";", ",").split(",")]
        if isinstance(value, (list, tuple, set, frozenset)):
            normalized = []
            for ext in value:
                ext = str(ext).strip().lower()
                if not ext:
                    continue
                normalized.append(ext if ext.startswith(".") else f".{ext}")
            if not normalized:
                raise ValueError("supported_image_extensions must not be empty")
            return tuple(dict.fromkeys(normalized))
        return value

    @field_validator("ocr_api_url", "health_check_url", "local_llm_url")
    @classmethod
    def _validate_required_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL is required")
        return _check_url(value)

    @field_validator("llm_health_check_url", "local_llm_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("llm_health_check_url")
    @classmethod
    def _validate_optional_url(cls, value: str | None) -> str | None:
        return _check_url(value) if value is not None else None

    @field_validator(
        "ocr_timeout_seconds",
        "llm_timeout_seconds",
        "health_check_timeout_seconds",
        "llm_health_check_timeout_seconds",
        "stability_poll_interval_seconds",
        "stability_threshold",
        "stability_max_wait_seconds",
        "watch_health_interval_seconds",
        "ledger_capacity",
        "stats_report_interval_seconds",
    )
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    def is_image_file(self, path: str | Path) -> bool:
        """Return True when the path's extension is a supported image extension."""
        return Path(path).suffix.lower() in self.supported_image_extensions


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"invalid URL: {value!r}")
    return value


def load_settings(**overrides: object) -> Settings:
    """Build Settings once at startup, translating failures into ocrwatch errors.

    Raises:
        ValidationError: if a configuration value is malformed.
        ConfigError: if the configuration file cannot be read or parsed.
    """
    try:
        return Settings(**overrides)
    except pydantic.ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in exc.errors()
        )
        raise ValidationError(f"Invalid configuration: {fields}", cause=exc) from exc
    except (OSError, json.JSONDecodeError, SettingsError) as exc:
        raise ConfigError(f"Failed to load configuration: {exc}", cause=exc) from exc
