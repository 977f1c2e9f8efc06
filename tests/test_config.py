"""Unit tests for settings loading, validation, and persistence."""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from aadcred.config import (
    ConfigError,
    Settings,
    Timeouts,
    configure_logging,
    load_config,
    save_config,
)


def _write(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


class TestSettings:
    def test_defaults(self):
        """
        Given no arguments
        When Settings is constructed
        Then the Graph URL and five minute timeouts are used
        """
        settings = Settings()
        assert settings.graph_url == "https://graph.microsoft.com/v1.0"
        assert settings.az_path == "az"
        assert settings.timeouts.create == 300.0
        assert settings.replication_poll_interval == 2.0

    def test_non_positive_timeout_raises(self):
        """
        Given a zero create timeout
        When Timeouts is validated
        Then a ValidationError is raised
        """
        with pytest.raises(ValidationError):
            Timeouts(create=0)

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_raises(self):
        with pytest.raises(ValidationError, match="unknown log level"):
            Settings(log_level="chatty")


class TestLoadConfig:
    def test_returns_defaults_when_file_missing(self, tmp_path: Path, monkeypatch):
        """
        Given no config file exists
        When load_config is called
        Then it returns default settings and creates the file and README
        """
        cfg_path = tmp_path / "config.json"
        readme_path = tmp_path / "README.md"
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)
        monkeypatch.setattr("aadcred.config._README_PATH", readme_path)

        result = load_config()

        assert result == Settings()
        assert cfg_path.exists()
        assert readme_path.exists()

    def test_bootstrapped_file_is_valid_json(self, tmp_path: Path, monkeypatch):
        """
        Given no config file exists
        When load_config creates the bootstrap file
        Then config.json is valid JSON containing an empty object
        """
        cfg_path = tmp_path / "config.json"
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)
        monkeypatch.setattr("aadcred.config._README_PATH", tmp_path / "README.md")

        load_config()

        assert json.loads(cfg_path.read_text()) == {}

    def test_empty_file_returns_defaults(self, tmp_path: Path, monkeypatch):
        cfg_path = tmp_path / "config.json"
        cfg_path.write_text("")
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        assert load_config() == Settings()

    def test_valid_config_is_parsed(self, tmp_path: Path, monkeypatch):
        """
        Given a config.json overriding the timeouts and poll interval
        When load_config is called
        Then the overrides are applied and other fields keep their defaults
        """
        cfg_path = tmp_path / "config.json"
        _write(cfg_path, {"timeouts": {"create": 60}, "replication_poll_interval": 0.5})
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        result = load_config()

        assert result.timeouts.create == 60
        assert result.timeouts.delete == 300.0
        assert result.replication_poll_interval == 0.5
        assert result.az_path == "az"

    def test_underscore_keys_are_stripped(self, tmp_path: Path, monkeypatch):
        """
        Given config.json contains keys starting with '_' at the top level and in timeouts
        When load_config is called
        Then they are ignored
        """
        cfg_path = tmp_path / "config.json"
        _write(
            cfg_path,
            {"_comment": "tuned for CI", "timeouts": {"_note": "seconds", "read": 10}},
        )
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        assert load_config().timeouts.read == 10

    def test_invalid_json_raises_config_error(self, tmp_path: Path, monkeypatch):
        """
        Given config.json contains malformed JSON
        When load_config is called
        Then a ConfigError is raised
        """
        cfg_path = tmp_path / "config.json"
        cfg_path.write_text("{not valid json}")
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        with pytest.raises(ConfigError, match="not valid JSON"):
            load_config()

    def test_non_object_root_raises_config_error(self, tmp_path: Path, monkeypatch):
        """
        Given config.json contains a JSON array at the root
        When load_config is called
        Then a ConfigError is raised
        """
        cfg_path = tmp_path / "config.json"
        _write(cfg_path, [])
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        with pytest.raises(ConfigError, match="top level"):
            load_config()

    def test_invalid_value_raises_config_error(self, tmp_path: Path, monkeypatch):
        """
        Given a negative poll interval
        When load_config is called
        Then a ConfigError is raised naming the field
        """
        cfg_path = tmp_path / "config.json"
        _write(cfg_path, {"replication_poll_interval": -1})
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        with pytest.raises(ConfigError, match="replication_poll_interval"):
            load_config()


class TestSaveConfig:
    def test_round_trip(self, tmp_path: Path, monkeypatch):
        """
        Given custom settings
        When save_config then load_config is called
        Then the loaded settings match the original
        """
        cfg_path = tmp_path / "config.json"
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)
        original = Settings(az_path="/usr/bin/az", timeouts=Timeouts(delete=30))

        save_config(original)

        assert load_config() == original

    def test_creates_parent_directory(self, tmp_path: Path, monkeypatch):
        cfg_path = tmp_path / "nested" / "dir" / "config.json"
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        save_config(Settings())

        assert cfg_path.exists()


class TestConfigureLogging:
    def test_sets_package_logger_level(self):
        logger = configure_logging("DEBUG")
        try:
            assert logger.name == "aadcred"
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(logging.NOTSET)

    def test_applies_level_from_loaded_config(self, tmp_path: Path, monkeypatch):
        """
        Given config.json sets log_level to 'warning'
        When the loaded settings are passed to configure_logging
        Then the package logger uses WARNING
        """
        cfg_path = tmp_path / "config.json"
        _write(cfg_path, {"log_level": "warning"})
        monkeypatch.setattr("aadcred.config.CONFIG_PATH", cfg_path)

        logger = configure_logging(load_config().log_level)
        try:
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(logging.NOTSET)
