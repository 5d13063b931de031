from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "JELLYFIN_TOOLS_CONFIG_DIR"
LEGACY_CONFIG_FILENAME = "jellyfin-config.json"
APP_CONFIG_FILENAME = "jellyfin-tools.json"
APP_CONFIG_VERSION = 1


class ConfigError(RuntimeError):
    """Raised when configuration is missing, invalid, or cannot be read."""


class ConnectionConfig(BaseModel):
    """Server connection parameters, persisted as the bare legacy config file."""

    server_url: str = Field(default="", alias="serverUrl")
    api_token: str = Field(default="", alias="apiToken")
    user_id: str | None = Field(default=None, alias="userId")
    timeout: int = Field(default=30000, ge=1, description="Request timeout in milliseconds.")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000

    def is_valid(self) -> bool:
        return (
            bool(self.server_url)
            and bool(self.api_token)
            and self.server_url.startswith(("http://", "https://"))
        )

    def require_valid(self) -> None:
        """Fail before any network call when the server URL or token is unusable."""
        if not self.is_valid():
            raise ConfigError(
                "Invalid configuration: provide an http(s) server URL and a non-empty API token.",
            )


class AppConfig(BaseModel):
    """Layered application config: UI preferences around an optional connection."""

    config_version: int = Field(default=APP_CONFIG_VERSION, alias="configVersion")
    jellyfin_config: ConnectionConfig | None = Field(default=None, alias="jellyfinConfig")
    ui_scale: float = Field(default=1.0, ge=0.5, le=3.0, alias="uiScale")
    remember_connection: bool = Field(default=True, alias="rememberConnection")
    enable_real_time_logs: bool = Field(default=True, alias="enableRealTimeLogs")
    show_detailed_logs: bool = Field(default=False, alias="showDetailedLogs")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


@dataclass(frozen=True)
class ConnectionLoadResult:
    config: ConnectionConfig
    source_path: Path | None


class ConfigManager:
    """Reads and writes the connection and application config files in one directory."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir = config_dir or default_config_dir()

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def legacy_path(self) -> Path:
        return self._config_dir / LEGACY_CONFIG_FILENAME

    @property
    def app_path(self) -> Path:
        return self._config_dir / APP_CONFIG_FILENAME

    def exists(self) -> bool:
        return self.legacy_path.exists() or self.app_path.exists()

    def save_connection(self, config: ConnectionConfig) -> Path:
        self._write(self.legacy_path, config.model_dump(by_alias=True))
        logger.info(f"Connection config saved to {self.legacy_path}")
        return self.legacy_path

    def remember(self, connection: ConnectionConfig) -> Path:
        """Store ``connection`` inside the layered config, keeping UI preferences."""
        app_config = self.load_app_config() or AppConfig()
        updated = app_config.model_copy(update={"jellyfin_config": connection})
        return self.save_app_config(updated)

    def load_connection(self) -> ConnectionConfig | None:
        payload = self._read(self.legacy_path)
        if payload is None:
            return None
        return _validate(ConnectionConfig, payload, self.legacy_path)

    def save_app_config(self, config: AppConfig) -> Path:
        self._write(self.app_path, config.model_dump(by_alias=True))
        logger.info(f"Application config saved to {self.app_path}")
        return self.app_path

    def load_app_config(self) -> AppConfig | None:
        """Load the layered config, migrating a legacy connection file when needed.

        Returns None when neither file exists. A malformed file raises ConfigError
        rather than being guessed at.
        """
        payload = self._read(self.app_path)
        if payload is not None:
            if not isinstance(payload, dict):
                raise ConfigError(f"Expected a JSON object in {self.app_path}")
            version = payload.get("configVersion", APP_CONFIG_VERSION)
            if version != APP_CONFIG_VERSION:
                raise ConfigError(f"Unsupported config version {version!r} in {self.app_path}")
            return _validate(AppConfig, payload, self.app_path)

        legacy = self.load_connection()
        if legacy is None:
            return None

        migrated = AppConfig(jellyfin_config=legacy)
        logger.info(f"Migrating {self.legacy_path} to {self.app_path}")
        self.save_app_config(migrated)
        return migrated

    def delete(self) -> list[Path]:
        removed: list[Path] = []
        for path in (self.legacy_path, self.app_path):
            if path.exists():
                path.unlink()
                removed.append(path)
        return removed

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Unable to read {path}: {exc}") from exc

    def _write(self, path: Path, payload: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Unable to write {path}: {exc}") from exc


def default_config_dir() -> Path:
    env_override = os.getenv(CONFIG_DIR_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()
    return Path.home() / ".config" / "jellyfin-tools"


def resolve_connection(
    server_url: str | None = None,
    api_token: str | None = None,
    user_id: str | None = None,
    *,
    manager: ConfigManager | None = None,
    load_env: bool = True,
) -> ConnectionLoadResult:
    """Merge explicit values, environment variables and saved config into one connection.

    Precedence: explicit arguments, then environment (and ``.env``), then the saved
    application config, then the legacy connection file. The result is not validated;
    call ``require_valid`` before using it.
    """

    if load_env:
        load_dotenv()

    manager = manager or ConfigManager()
    saved: ConnectionConfig | None = None
    source_path: Path | None = None

    app_config = manager.load_app_config()
    if app_config is not None and app_config.jellyfin_config is not None:
        saved = app_config.jellyfin_config
        source_path = manager.app_path
    else:
        # A layered file holding only UI preferences leaves the legacy connection in charge.
        saved = manager.load_connection()
        if saved is not None:
            source_path = manager.legacy_path

    merged: dict[str, Any] = saved.model_dump() if saved else {}
    merged.update(_collect_env_overrides())
    explicit = {"server_url": server_url, "api_token": api_token, "user_id": user_id}
    merged.update({key: value for key, value in explicit.items() if value is not None})

    try:
        config = ConnectionConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return ConnectionLoadResult(config=config, source_path=source_path)


def _collect_env_overrides() -> dict[str, Any]:
    mapping: dict[str, str] = {
        "JELLYFIN_SERVER_URL": "server_url",
        "JELLYFIN_API_TOKEN": "api_token",
        "JELLYFIN_USER_ID": "user_id",
        "JELLYFIN_TIMEOUT": "timeout",
    }

    result: dict[str, Any] = {}
    for env_name, field in mapping.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field == "timeout":
            try:
                result[field] = int(value)
            except ValueError as exc:
                raise ConfigError(f"{env_name} must be an integer (milliseconds)") from exc
        else:
            result[field] = value
    return result


def _validate(model: type[BaseModel], payload: Any, path: Path) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc


__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigManager",
    "ConnectionConfig",
    "ConnectionLoadResult",
    "default_config_dir",
    "resolve_connection",
]
