"""
Tests for Config
================
Priority order (overrides > environment > config.json > defaults),
deploy aliases, normalization and validation errors.
"""

import json
from pathlib import Path

import pytest

from contact_bot.core.config import BASE_DIR, Config
from contact_bot.core.exceptions import ConfigurationException

ENV_KEYS = (
    "ADMIN_JID", "APP_URL", "PORT", "ENVIRONMENT", "NODE_ENV", "SERVER_NAME",
    "RENDER_SERVICE_NAME", "WHATSAPP_API_URL", "DATA_DIR", "LOG_LEVEL",
    "MAX_RECONNECT_ATTEMPTS", "HEARTBEAT_INTERVAL", "STALE_AFTER", "KEEP_ALIVE_INTERVAL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def no_json(tmp_path):
    return str(tmp_path / "missing.json")


@pytest.mark.unit
class TestDefaults:

    def test_defaults(self, no_json):
        settings = Config(config_path=no_json, load_env=False).settings
        assert settings.PORT == 3000
        assert settings.ENVIRONMENT == "development"
        assert settings.SERVER_NAME == "Local"
        assert settings.WHATSAPP_API_URL == "http://localhost:3001"
        assert settings.MAX_RECONNECT_ATTEMPTS == 10
        assert settings.HEARTBEAT_INTERVAL == 60
        assert settings.STALE_AFTER == 300
        assert settings.KEEP_ALIVE_INTERVAL == 600
        assert settings.ADMIN_JID is None
        assert settings.APP_URL is None

    def test_default_data_dir(self, no_json):
        assert Config(config_path=no_json, load_env=False).data_dir == BASE_DIR / "data"


@pytest.mark.unit
class TestSources:

    def test_environment(self, monkeypatch, no_json):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("ADMIN_JID", "55@s.whatsapp.net")
        config = Config(config_path=no_json)
        assert config.settings.PORT == 8080
        assert config.get("ADMIN_JID") == "55@s.whatsapp.net"

    def test_aliases(self, monkeypatch, no_json):
        monkeypatch.setenv("NODE_ENV", "production")
        monkeypatch.setenv("RENDER_SERVICE_NAME", "contact-bot")
        settings = Config(config_path=no_json).settings
        assert settings.ENVIRONMENT == "production"
        assert settings.SERVER_NAME == "contact-bot"

    def test_primary_name_wins_over_alias(self, monkeypatch, no_json):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        monkeypatch.setenv("NODE_ENV", "production")
        assert Config(config_path=no_json).settings.ENVIRONMENT == "staging"

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"PORT": 4000, "EXTRA": "x"}), encoding="utf-8")
        config = Config(config_path=str(path), load_env=False)
        assert config.settings.PORT == 4000
        assert config.get("EXTRA") == "x"

    def test_env_beats_json(self, monkeypatch, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"PORT": 4000}), encoding="utf-8")
        monkeypatch.setenv("PORT", "5000")
        assert Config(config_path=str(path)).settings.PORT == 5000

    def test_overrides_beat_env(self, monkeypatch, no_json):
        monkeypatch.setenv("PORT", "5000")
        assert Config(config_path=no_json, overrides={"PORT": 6000}).settings.PORT == 6000

    def test_malformed_json_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops", encoding="utf-8")
        assert Config(config_path=str(path), load_env=False).settings.PORT == 3000


@pytest.mark.unit
class TestNormalization:

    def test_empty_strings_become_none(self, no_json):
        config = Config(config_path=no_json, load_env=False,
                        overrides={"ADMIN_JID": "  ", "APP_URL": "", "DATA_DIR": ""})
        assert config.settings.ADMIN_JID is None
        assert config.settings.APP_URL is None
        assert config.get("APP_URL", "fallback") == "fallback"

    def test_trailing_slash_stripped(self, no_json):
        config = Config(config_path=no_json, load_env=False, overrides={
            "APP_URL": "https://bot.example.com/",
            "WHATSAPP_API_URL": "http://bridge:3001/",
        })
        assert config.settings.APP_URL == "https://bot.example.com"
        assert config.settings.WHATSAPP_API_URL == "http://bridge:3001"

    def test_log_level_uppercased(self, no_json):
        config = Config(config_path=no_json, load_env=False, overrides={"LOG_LEVEL": "debug"})
        assert config.settings.LOG_LEVEL == "DEBUG"

    def test_custom_data_dir(self, tmp_path, no_json):
        config = Config(config_path=no_json, load_env=False, overrides={"DATA_DIR": str(tmp_path)})
        assert config.data_dir == Path(tmp_path)

    def test_mapping_access(self, no_json):
        config = Config(config_path=no_json, load_env=False)
        assert config["PORT"] == 3000
        assert "PORT" in config
        assert "ADMIN_JID" not in config
        assert config.get_all()["SERVER_NAME"] == "Local"


@pytest.mark.unit
class TestValidation:

    def test_invalid_log_level(self, no_json):
        with pytest.raises(ConfigurationException) as exc:
            Config(config_path=no_json, load_env=False, overrides={"LOG_LEVEL": "LOUD"})
        assert exc.value.error_code == "INVALID_CONFIG"
        assert exc.value.details["errors"]

    def test_invalid_port(self, monkeypatch, no_json):
        monkeypatch.setenv("PORT", "not-a-port")
        with pytest.raises(ConfigurationException):
            Config(config_path=no_json)

    def test_port_out_of_range(self, no_json):
        with pytest.raises(ConfigurationException):
            Config(config_path=no_json, load_env=False, overrides={"PORT": 70000})
