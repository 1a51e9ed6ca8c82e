"""Settings loading with deterministic precedence.

The cascade is always:
1) explicit ``cli_params``
2) environment variables (``PORTAL_`` prefix, ``__`` nesting)
3) YAML config file
4) model defaults

Example: ``PORTAL_HTTP__TIMEOUT_SECONDS=5`` -> ``http.timeout_seconds = 5.0``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Mapping

from .models import DEFAULT_CONFIG_PATH, PortalSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> PortalSettings:
    """Resolve ``PortalSettings`` from params, env, and an optional YAML path."""
    resolved = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings_cls = _settings_class_for(resolved)
    return settings_cls(**dict(cli_params or {}))


def _settings_class_for(path: Path) -> type[PortalSettings]:
    """Return a settings class reading YAML from ``path``."""
    if path == PortalSettings._config_path:
        return PortalSettings

    class _PathScopedSettings(PortalSettings):
        _config_path: ClassVar[Path] = path

    return _PathScopedSettings
