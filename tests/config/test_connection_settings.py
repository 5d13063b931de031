"""Tests for connection config, layered app config and resolution precedence."""

import json

import pytest
from pydantic import ValidationError

from jellyfin_tools.config.settings import (
    AppConfig,
    ConfigError,
    ConfigManager,
    ConnectionConfig,
    default_config_dir,
    resolve_connection,
)

ENV_VARS = ("JELLYFIN_SERVER_URL", "JELLYFIN_API_TOKEN", "JELLYFIN_USER_ID", "JELLYFIN_TIMEOUT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def manager(tmp_path):
    return ConfigManager(tmp_path)


def test_connection_defaults():
    config = ConnectionConfig()

    assert config.server_url == ""
    assert config.api_token == ""
    assert config.user_id is None
    assert config.timeout == 30000
    assert config.timeout_seconds == 30.0


@pytest.mark.parametrize(
    ("server_url", "api_token", "valid"),
    [
        ("http://jellyfin.local:8096", "token", True),
        ("https://media.example.org", "token", True),
        ("jellyfin.local:8096", "token", False),
        ("", "token", False),
        ("http://jellyfin.local:8096", "", False),
        ("http://jellyfin.local:8096", "   ", False),
    ],
)
def test_connection_validity(server_url, api_token, valid):
    config = ConnectionConfig(server_url=server_url, api_token=api_token)

    assert config.is_valid() is valid


def test_require_valid_raises():
    with pytest.raises(ConfigError, match="Invalid configuration"):
        ConnectionConfig(api_token="").require_valid()


def test_connection_reads_camel_case_keys():
    config = ConnectionConfig.model_validate(
        {"serverUrl": "http://nas:8096", "apiToken": "abc", "userId": "u1", "timeout": 5000}
    )

    assert config.server_url == "http://nas:8096"
    assert config.user_id == "u1"
    assert config.timeout_seconds == 5.0


@pytest.mark.parametrize("scale", [0.4, 3.5])
def test_ui_scale_bounds(scale):
    with pytest.raises(ValidationError):
        AppConfig(ui_scale=scale)


def test_app_config_defaults():
    config = AppConfig()

    assert config.config_version == 1
    assert config.jellyfin_config is None
    assert config.ui_scale == 1.0
    assert config.remember_connection is True
    assert config.enable_real_time_logs is True
    assert config.show_detailed_logs is False


class TestConfigManager:
    def test_missing_files(self, manager):
        assert manager.exists() is False
        assert manager.load_connection() is None
        assert manager.load_app_config() is None

    def test_save_and_load_connection(self, manager):
        manager.save_connection(ConnectionConfig(server_url="http://nas:8096", api_token="abc"))

        payload = json.loads(manager.legacy_path.read_text(encoding="utf-8"))
        assert payload["serverUrl"] == "http://nas:8096"
        assert payload["apiToken"] == "abc"
        assert payload["timeout"] == 30000
        assert manager.load_connection() == ConnectionConfig(
            server_url="http://nas:8096", api_token="abc"
        )

    def test_legacy_file_is_migrated(self, manager):
        manager.legacy_path.write_text(
            json.dumps({"serverUrl": "http://old:8096", "apiToken": "legacy"}),
            encoding="utf-8",
        )

        app_config = manager.load_app_config()

        assert app_config is not None
        assert app_config.jellyfin_config is not None
        assert app_config.jellyfin_config.api_token == "legacy"
        assert app_config.ui_scale == 1.0
        assert manager.app_path.exists()
        saved = json.loads(manager.app_path.read_text(encoding="utf-8"))
        assert saved["configVersion"] == 1
        assert saved["jellyfinConfig"]["serverUrl"] == "http://old:8096"

    def test_app_config_takes_precedence_over_legacy(self, manager):
        manager.save_connection(ConnectionConfig(server_url="http://old:8096", api_token="legacy"))
        manager.save_app_config(
            AppConfig(
                jellyfin_config=ConnectionConfig(server_url="http://new:8096", api_token="fresh"),
                ui_scale=1.5,
            )
        )

        app_config = manager.load_app_config()

        assert app_config.ui_scale == 1.5
        assert app_config.jellyfin_config.server_url == "http://new:8096"

    def test_remember_keeps_ui_preferences(self, manager):
        manager.save_app_config(AppConfig(ui_scale=2.0, show_detailed_logs=True))

        manager.remember(ConnectionConfig(server_url="http://nas:8096", api_token="abc"))

        app_config = manager.load_app_config()
        assert app_config.ui_scale == 2.0
        assert app_config.show_detailed_logs is True
        assert app_config.jellyfin_config.api_token == "abc"

    def test_malformed_json_raises(self, manager):
        manager.app_path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ConfigError, match="Unable to read"):
            manager.load_app_config()

    def test_non_object_payload_raises(self, manager):
        manager.app_path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(ConfigError, match="Expected a JSON object"):
            manager.load_app_config()

    def test_unsupported_version_raises(self, manager):
        manager.app_path.write_text(json.dumps({"configVersion": 99}), encoding="utf-8")

        with pytest.raises(ConfigError, match="Unsupported config version"):
            manager.load_app_config()

    def test_out_of_range_value_raises(self, manager):
        manager.app_path.write_text(json.dumps({"uiScale": 9.0}), encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid config"):
            manager.load_app_config()

    def test_delete(self, manager):
        manager.save_connection(ConnectionConfig(api_token="abc"))
        manager.save_app_config(AppConfig())

        removed = manager.delete()

        assert set(removed) == {manager.legacy_path, manager.app_path}
        assert manager.exists() is False
        assert manager.delete() == []


def test_default_config_dir_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("JELLYFIN_TOOLS_CONFIG_DIR", str(tmp_path / "custom"))

    assert default_config_dir() == (tmp_path / "custom").resolve()


class TestResolveConnection:
    def test_defaults_without_sources(self, manager):
        result = resolve_connection(manager=manager, load_env=False)

        assert result.source_path is None
        assert result.config.server_url == ""
        assert result.config.is_valid() is False

    def test_saved_config_used(self, manager):
        manager.remember(ConnectionConfig(server_url="http://saved:8096", api_token="saved", user_id="u"))

        result = resolve_connection(manager=manager, load_env=False)

        assert result.source_path == manager.app_path
        assert result.config.server_url == "http://saved:8096"
        assert result.config.user_id == "u"

    def test_legacy_config_used(self, manager):
        manager.save_connection(ConnectionConfig(server_url="http://legacy:8096", api_token="old"))

        result = resolve_connection(manager=manager, load_env=False)

        assert result.config.api_token == "old"

    def test_missing_server_url_is_invalid(self, manager):
        result = resolve_connection(api_token="tok", manager=manager, load_env=False)

        with pytest.raises(ConfigError, match="Invalid configuration"):
            result.config.require_valid()

    def test_legacy_used_when_app_config_has_no_connection(self, manager):
        manager.app_path.write_text(json.dumps({"configVersion": 1, "uiScale": 1.5}), encoding="utf-8")
        manager.legacy_path.write_text(
            json.dumps({"serverUrl": "http://legacy:8096", "apiToken": "legacy-token"}),
            encoding="utf-8",
        )

        result = resolve_connection(manager=manager, load_env=False)

        assert result.config.server_url == "http://legacy:8096"
        assert result.config.api_token == "legacy-token"
        assert result.source_path == manager.legacy_path

    def test_env_overrides_saved(self, manager, monkeypatch):
        manager.remember(ConnectionConfig(server_url="http://saved:8096", api_token="saved"))
        monkeypatch.setenv("JELLYFIN_API_TOKEN", "from-env")
        monkeypatch.setenv("JELLYFIN_TIMEOUT", "5000")

        result = resolve_connection(manager=manager, load_env=False)

        assert result.config.server_url == "http://saved:8096"
        assert result.config.api_token == "from-env"
        assert result.config.timeout == 5000

    def test_explicit_overrides_env(self, manager, monkeypatch):
        monkeypatch.setenv("JELLYFIN_SERVER_URL", "http://env:8096")
        monkeypatch.setenv("JELLYFIN_API_TOKEN", "from-env")

        result = resolve_connection(
            server_url="http://cli:8096",
            user_id="cli-user",
            manager=manager,
            load_env=False,
        )

        assert result.config.server_url == "http://cli:8096"
        assert result.config.api_token == "from-env"
        assert result.config.user_id == "cli-user"

    def test_invalid_timeout_env(self, manager, monkeypatch):
        monkeypatch.setenv("JELLYFIN_TIMEOUT", "soon")

        with pytest.raises(ConfigError, match="JELLYFIN_TIMEOUT"):
            resolve_connection(manager=manager, load_env=False)
