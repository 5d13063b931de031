from .settings import (
    AppConfig,
    ConfigError,
    ConfigManager,
    ConnectionConfig,
    ConnectionLoadResult,
    default_config_dir,
    resolve_connection,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigManager",
    "ConnectionConfig",
    "ConnectionLoadResult",
    "default_config_dir",
    "resolve_connection",
]
