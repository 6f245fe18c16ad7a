from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("dental_intake.config")


class Settings(BaseSettings):
    app_env: str = "development"
    api_base_url: str = Field(default="http://localhost:5006/api", alias="API_BASE_URL")
    api_timeout_seconds: float = Field(default=30.0, alias="API_TIMEOUT_SECONDS")
    api_token: str | None = Field(default=None, alias="API_TOKEN")
    category_catalog_path: str | None = Field(default=None, alias="CATEGORY_CATALOG_PATH")
    currency_symbol: str = Field(default="₹", alias="CURRENCY_SYMBOL")
    clinic_name: str = Field(default="Dental Clinic", alias="CLINIC_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("api_timeout_seconds", mode="before")
    @classmethod
    def _coerce_empty_numbers(cls, value, info):
        if value in {"", None}:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("api_token", "category_catalog_path", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _is_production(app_env: str) -> bool:
    return app_env.strip().lower() in {"prod", "production"}


def validate_settings(settings: Settings) -> None:
    production = _is_production(settings.app_env)
    failures: list[str] = []
    warnings: list[str] = []

    if not settings.api_token:
        msg = "API_TOKEN is not set; API calls will be unauthenticated"
        if production:
            failures.append(msg)
        else:
            warnings.append(msg)

    if not settings.api_base_url.lower().startswith("https://"):
        msg = "API_BASE_URL does not use https"
        if production:
            failures.append(msg)
        else:
            warnings.append(msg)

    if settings.api_timeout_seconds <= 0:
        failures.append("API_TIMEOUT_SECONDS must be positive")

    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    if failures:
        raise RuntimeError("Config validation failed: " + "; ".join(failures))


settings = Settings()
