from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._validators import _clean_optional
from .integrations import BookmarksSyncConfig, GitHubConfig

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        return _clean_optional(value)


@dataclass(frozen=True)
class AppConfig:
    github: GitHubConfig
    bookmarks: BookmarksSyncConfig
    runtime: RuntimeConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables and an optional .env file.

    Nested models are populated by matching ``validation_alias`` on each field
    against the flat variable names. Precedence: constructor arguments, then
    the process environment, then the .env file.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        case_sensitive=True,
    )

    env_file: str | None = Field(default=None, exclude=True)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    bookmarks: BookmarksSyncConfig = Field(default_factory=BookmarksSyncConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables."""
        if not isinstance(data, dict):
            return data

        result = dict(data)
        env_file = Path(data.get("env_file") or DEFAULT_ENV_FILE)
        file_data: dict[str, Any] = {}
        if env_file.is_file():
            file_data = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        merged_source = {**file_data, **os.environ, **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve environment variable value for a field using its aliases."""
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(github=self.github, bookmarks=self.bookmarks, runtime=self.runtime)


def load_config(env_file: str | None = None, **overrides: Any) -> AppConfig:
    """Load application configuration.

    Called once per sync run, so edits to the environment or the .env file
    take effect on the next run without a restart.

    Args:
        env_file: Path of a .env file; defaults to ``.env`` in the working directory.
        **overrides: Flat variable overrides (e.g. ``OSMOS_BOOKMARKS_SYNC_MODE="folder"``).

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(env_file=env_file, **overrides)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        logger.error("config_validation_failed", extra={"errors": errors})
        msg = f"Invalid configuration: {errors}"
        raise RuntimeError(msg) from exc
    return settings.as_app_config()
