"""Tests for settings persistence and the runtime session configuration."""

from __future__ import annotations

import json

import pytest

from print_sender.utils.config import DEFAULT_SETTINGS, SessionConfig, Settings
from print_sender.utils.exceptions import (
    InvalidParameterError,
    InvalidRangeError,
    SettingsLoadError,
    SettingsValidationError,
)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(str(tmp_path / "settings.json"))


def test_defaults_when_no_file(settings: Settings) -> None:
    assert settings.load() is False
    assert settings.get("ack_timeout") == DEFAULT_SETTINGS["ack_timeout"]
    assert settings.get("start_code") == []
    assert settings.validate()


def test_save_then_load_keeps_values(settings: Settings) -> None:
    settings.set("last_port", "/dev/ttyACM0")
    settings.set("start_code", ["M104 S200", "G28"])
    settings.save()

    reloaded = Settings(settings.filepath)
    assert reloaded.load() is True
    assert reloaded.get("last_port") == "/dev/ttyACM0"
    assert reloaded.get("start_code") == ["M104 S200", "G28"]


def test_save_keeps_backup_of_previous_file(settings: Settings, tmp_path) -> None:
    settings.save()
    settings.set("baud_rate", 250000)
    settings.save()
    backup = json.loads((tmp_path / "settings.json.backup").read_text(encoding="utf-8"))
    assert backup["baud_rate"] == 115200


def test_load_merges_missing_keys_with_defaults(settings: Settings, tmp_path) -> None:
    (tmp_path / "settings.json").write_text(json.dumps({"test_mode": True}), encoding="utf-8")
    settings.load()
    assert settings.get("test_mode") is True
    assert settings.get("pause_poll_interval") == DEFAULT_SETTINGS["pause_poll_interval"]


def test_invalid_json_raises_load_error(settings: Settings, tmp_path) -> None:
    (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(SettingsLoadError):
        settings.load()


def test_unknown_keys_in_file_are_ignored(settings: Settings, tmp_path) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"ui": {"console": {"lines": 100}}, "baud_rate": 250000}), encoding="utf-8"
    )
    settings.load()
    assert settings.get("ui") is None
    assert settings.get("baud_rate") == 250000


def test_set_rejects_unknown_key(settings: Settings) -> None:
    with pytest.raises(SettingsValidationError):
        settings.set("ui.console.lines", 100)


def test_save_refuses_invalid_values(settings: Settings, tmp_path) -> None:
    settings.set("ack_timeout", 0)
    with pytest.raises(SettingsValidationError):
        settings.save()
    assert not (tmp_path / "settings.json").exists()


def test_remember_connection_persists_port_and_baud(settings: Settings) -> None:
    assert settings.remember_connection("/dev/ttyACM0", 250000)

    reloaded = Settings(str(settings.filepath))
    reloaded.load()
    assert reloaded.get("last_port") == "/dev/ttyACM0"
    assert reloaded.get("baud_rate") == 250000


def test_remember_connection_reports_save_failure(settings: Settings) -> None:
    assert not settings.remember_connection("/dev/ttyACM0", 12345)


@pytest.mark.parametrize(
    "key, value",
    [
        ("baud_rate", 12345),
        ("ack_timeout", 0),
        ("pause_poll_interval", -1),
        ("idle_poll_interval", "fast"),
        ("test_line_delay", True),
        ("max_send_attempts", -2),
        ("test_mode", "yes"),
        ("start_code", "G28"),
        ("end_code", [1, 2]),
        ("response_delimiter", ""),
        ("log_level", "LOUD"),
        ("serial_log", 1),
        ("serial_log_format", "%(asctime)s"),
    ],
)
def test_validate_rejects_bad_values(settings: Settings, key: str, value) -> None:
    settings.set(key, value)
    with pytest.raises(SettingsValidationError):
        settings.validate()


def test_session_config_from_settings(settings: Settings) -> None:
    settings.set("ack_timeout", 2.5)
    settings.set("max_send_attempts", 0)
    settings.set("end_code", ["M84"])

    config = SessionConfig.from_settings(settings)

    assert config.ack_timeout == 2.5
    assert config.max_send_attempts is None
    assert config.end_code == ("M84",)
    assert config.test_mode is False


def test_session_config_overrides_win(settings: Settings) -> None:
    config = SessionConfig.from_settings(settings, test_mode=True, max_send_attempts=5, ack_timeout=None)
    assert config.test_mode is True
    assert config.max_send_attempts == 5
    assert config.ack_timeout == DEFAULT_SETTINGS["ack_timeout"]


def test_session_config_rejects_bad_values() -> None:
    with pytest.raises(InvalidParameterError):
        SessionConfig(ack_timeout=-1)
    with pytest.raises(InvalidRangeError):
        SessionConfig(max_send_attempts=-3)


def test_session_config_requires_positive_ack_timeout() -> None:
    with pytest.raises(InvalidParameterError):
        SessionConfig(ack_timeout=0)


def test_zero_timeout_override_is_rejected(settings: Settings) -> None:
    with pytest.raises(InvalidParameterError):
        SessionConfig.from_settings(settings, ack_timeout=0.0)
