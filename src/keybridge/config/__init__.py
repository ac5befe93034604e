"""Configuration subsystem for keybridge.

Public API::

    from keybridge.config import get_config, BackendConfig

    # At startup (CLI only):
    BackendConfig(config_file="config.yaml")

    # Everywhere else:
    cfg = get_config()
    suffix = cfg.settings.keystore.staging_suffix   # typed access
    custom = cfg.get("crypto.provider")              # dynamic dot-path
"""

from keybridge.config.backend_config import (
    BackendConfig,
    ConfigValidationError,
    get_config,
)
from keybridge.config.settings import (
    BackendSettings,
    CryptoSettings,
    KeystoreSettings,
    LoggingSettings,
    TruststoreSettings,
    build_settings,
)

__all__ = [
    "BackendConfig",
    "BackendSettings",
    "ConfigValidationError",
    "CryptoSettings",
    "KeystoreSettings",
    "LoggingSettings",
    "TruststoreSettings",
    "build_settings",
    "get_config",
]
