"""Typed configuration models for Portal SDK runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "portal" / "portal.yaml"
DEFAULT_TOKEN_PATH = Path.home() / ".config" / "portal" / "credentials.json"


class LoggingSettings(BaseModel):
    """Structured logging configuration for SDK hosts."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "portal"
    environment: str = "dev"


class HttpSettings(BaseModel):
    """Origin server connection settings."""

    base_url: str = "https://api.example.com"
    timeout_seconds: float = Field(default=15.0, gt=0)
    upload_timeout_multiplier: int = Field(default=3, ge=1)
    slow_request_threshold_ms: float = Field(default=1000.0, ge=0)
    cache_ttl_seconds: float = Field(default=300.0, ge=0)


class RetrySettings(BaseModel):
    """Process-wide default retry policy values."""

    max_attempts: int = Field(default=2, ge=0)
    base_delay_ms: int = Field(default=1000, gt=0)
    multiplier: int = Field(default=2, ge=1)


class AuthSettings(BaseModel):
    """Credential handling and unauthorized-response settings."""

    login_path: str = "/login"
    auth_path_marker: str = "/auth/"
    token_path: Path = DEFAULT_TOKEN_PATH


class UploadSettings(BaseModel):
    """Upload routing settings."""

    direct_upload_enabled: bool = False


class PortalSettings(BaseSettings):
    """Root runtime settings resolved from init/env/yaml/defaults sources."""

    model_config = SettingsConfigDict(
        env_prefix="PORTAL_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply precedence: init > env > yaml > model defaults."""
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._config_path,
                yaml_file_encoding="utf-8",
            ),
        )
