from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from release_notifier.domain.errors import ConfigurationError
from release_notifier.models.notifications import NotificationCategory


_ROLE_ID_PATTERN = re.compile(r"\d+")


@dataclass(frozen=True)
class CategoryConfig:
    webhook_url: str
    name: str | None = None
    logo_url: str | None = None
    download_url: str | None = None
    role_id: str | None = None


class Settings(BaseSettings):
    environment: Literal["development", "production"] = "development"
    host: str = "0.0.0.0"
    port: int = 8080
    token: str | None = None
    sentry_dsn: str | None = None
    log_level: str = "INFO"
    delivery_timeout_seconds: float = 10.0

    discord_webhook: str
    mod_discord_role: str | None = None

    launcher_discord_webhook: str
    launcher_name: str
    launcher_logo: str
    launcher_download: str | None = None
    launcher_discord_role: str | None = None

    loader_discord_webhook: str
    loader_name: str
    loader_logo: str
    loader_discord_role: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: Any) -> str:
        return "production" if str(value).strip().lower() == "production" else "development"

    @field_validator("token", "sentry_dsn", "launcher_download", mode="before")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("mod_discord_role", "launcher_discord_role", "loader_discord_role", mode="before")
    @classmethod
    def _validate_role_id(cls, value: Any) -> str | None:
        if value is None:
            return None
        role_id = str(value).strip()
        if not role_id:
            return None
        if not _ROLE_ID_PATTERN.fullmatch(role_id):
            raise ValueError(f"Role id '{role_id}' is invalid")
        return role_id

    @model_validator(mode="after")
    def _require_token_in_production(self) -> "Settings":
        if self.environment == "production" and not self.token:
            raise ValueError("TOKEN is not configured; no-auth mode is only allowed in development")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def category_config(self, category: NotificationCategory) -> CategoryConfig:
        if category is NotificationCategory.MOD:
            return CategoryConfig(webhook_url=self.discord_webhook, role_id=self.mod_discord_role)
        if category is NotificationCategory.LAUNCHER:
            return CategoryConfig(
                webhook_url=self.launcher_discord_webhook,
                name=self.launcher_name,
                logo_url=self.launcher_logo,
                download_url=self.launcher_download,
                role_id=self.launcher_discord_role,
            )
        return CategoryConfig(
            webhook_url=self.loader_discord_webhook,
            name=self.loader_name,
            logo_url=self.loader_logo,
            role_id=self.loader_discord_role,
        )


def _describe(exc: PydanticValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())).upper()
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems)


def load_settings(**overrides: Any) -> Settings:
    """Read settings from the environment. Raises ConfigurationError on any invalid value."""
    try:
        return Settings(**overrides)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {_describe(exc)}") from exc
