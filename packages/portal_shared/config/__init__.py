"""Public API for Portal SDK configuration."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    AuthSettings,
    HttpSettings,
    LoggingSettings,
    PortalSettings,
    RetrySettings,
    UploadSettings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "AuthSettings",
    "HttpSettings",
    "LoggingSettings",
    "PortalSettings",
    "RetrySettings",
    "UploadSettings",
    "load_settings",
]
