"""Application settings management.

Settings are one flat JSON object. Unknown keys in the file are ignored,
missing ones take their defaults, and saving is atomic with a backup of
the previous file. ``SessionConfig`` is the frozen runtime view handed to
the streaming session.
"""

import json
import os
import sys
import shutil
import logging
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple
from pathlib import Path

from .constants import (
    ACK_TIMEOUT_DEFAULT,
    BAUD_DEFAULT,
    CONFIG_DIR_ENV,
    IDLE_POLL_INTERVAL,
    LOG_LEVELS,
    PAUSE_POLL_INTERVAL,
    RESPONSE_DELIMITER,
    SERIAL_LOG_FORMAT,
    SETTINGS_FILENAME,
    SETTINGS_BACKUP_SUFFIX,
    SETTINGS_TEMP_SUFFIX,
    TEST_LINE_DELAY,
    VALID_BAUD_RATES,
)
from .exceptions import (
    SettingsException,
    SettingsLoadError,
    SettingsSaveError,
    SettingsValidationError,
    ValidationException,
)
from .validation import (
    validate_attempt_limit,
    validate_interval,
    validate_timeout,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    # Connection
    "baud_rate": BAUD_DEFAULT,
    "last_port": "",
    # Streaming
    "ack_timeout": ACK_TIMEOUT_DEFAULT,
    "idle_poll_interval": IDLE_POLL_INTERVAL,
    "max_send_attempts": 0,
    "pause_poll_interval": PAUSE_POLL_INTERVAL,
    "response_delimiter": RESPONSE_DELIMITER,
    "test_line_delay": TEST_LINE_DELAY,
    "test_mode": False,
    "wait_for_ready": True,
    "start_code": [],
    "end_code": [],
    # Logging
    "log_level": "INFO",
    "serial_log": True,
    "serial_log_format": SERIAL_LOG_FORMAT,
}

_POLL_KEYS = ("idle_poll_interval", "pause_poll_interval", "test_line_delay")
_BOOL_KEYS = ("serial_log", "test_mode", "wait_for_ready")


def _defaults() -> Dict[str, Any]:
    data = dict(DEFAULT_SETTINGS)
    data["start_code"] = []
    data["end_code"] = []
    return data


def get_settings_dir() -> Path:
    """Directory holding settings.json and the logs/ directory."""
    env_dir = os.getenv(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA")
        return (Path(base) if base else Path.home()) / "PrintSender"
    base = os.getenv("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "print_sender"


def get_settings_path() -> Path:
    """Path to the settings file; the directory is created if missing."""
    directory = get_settings_dir()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        fallback = Path(tempfile.gettempdir()) / "print_sender"
        logger.warning(f"Cannot create {directory} ({e}); using {fallback}")
        fallback.mkdir(parents=True, exist_ok=True)
        directory = fallback
    return directory / SETTINGS_FILENAME


def _check_seconds(key: str, value: Any, positive: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsValidationError(f"Invalid {key}: {value!r}")
    try:
        if positive:
            validate_timeout(value)
        else:
            validate_interval(value)
    except ValidationException as e:
        raise SettingsValidationError(f"Invalid {key}: {e}")


class Settings:
    """Print Sender settings file.

    Example:
        settings = Settings()
        settings.load()
        settings.set("last_port", "/dev/ttyUSB0")
        settings.save()
    """

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = Path(filepath) if filepath else get_settings_path()
        self.data: Dict[str, Any] = _defaults()
        logger.info(f"Settings file: {self.filepath}")

    @property
    def directory(self) -> Path:
        return self.filepath.parent

    def load(self) -> bool:
        """Load settings from file.

        Returns:
            True if loaded successfully, False if no file exists

        Raises:
            SettingsLoadError: If the file exists but cannot be read
        """
        if not self.filepath.exists():
            logger.info("No settings file found, using defaults")
            return False

        try:
            loaded = json.loads(self.filepath.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in settings file: {e}")
            raise SettingsLoadError(f"Invalid JSON: {e}")
        except OSError as e:
            logger.error(f"Failed to read settings file: {e}")
            raise SettingsLoadError(f"Failed to read file: {e}")

        if not isinstance(loaded, dict):
            raise SettingsLoadError("Settings file must contain a JSON object")

        unknown = sorted(key for key in loaded if key not in DEFAULT_SETTINGS)
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")

        self.data = _defaults()
        self.data.update({k: v for k, v in loaded.items() if k in DEFAULT_SETTINGS})
        logger.info("Settings loaded successfully")
        return True

    def save(self) -> None:
        """Validate, then write the file atomically, keeping a backup.

        Raises:
            SettingsValidationError: If the current values are invalid
            SettingsSaveError: If the file cannot be written
        """
        self.validate()
        temp_path = self.filepath.with_name(self.filepath.name + SETTINGS_TEMP_SUFFIX)
        backup_path = self.filepath.with_name(self.filepath.name + SETTINGS_BACKUP_SUFFIX)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
            if self.filepath.exists():
                shutil.copy2(self.filepath, backup_path)
            os.replace(temp_path, self.filepath)
        except OSError as e:
            logger.error(f"Failed to write settings: {e}")
            raise SettingsSaveError(f"Failed to save: {e}")
        finally:
            if temp_path.exists():
                temp_path.unlink()
        logger.info("Settings saved successfully")

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set one setting.

        Raises:
            SettingsValidationError: If ``key`` is not a known setting
        """
        if key not in DEFAULT_SETTINGS:
            raise SettingsValidationError(f"Unknown setting: {key}")
        self.data[key] = value

    def remember_connection(self, port: str, baud: int) -> bool:
        """Store the port and baud rate of a working connection and save.

        Returns:
            True if saved; a failure is logged and reported as False
        """
        self.data["last_port"] = port
        self.data["baud_rate"] = baud
        try:
            self.save()
        except SettingsException as e:
            logger.warning(f"Could not remember connection: {e}")
            return False
        return True

    def validate(self) -> bool:
        """Validate current settings.

        Raises:
            SettingsValidationError: If validation fails
        """
        data = self.data

        if data["baud_rate"] not in VALID_BAUD_RATES:
            raise SettingsValidationError(f"Invalid baud rate: {data['baud_rate']}")

        _check_seconds("ack_timeout", data["ack_timeout"], positive=True)
        for key in _POLL_KEYS:
            _check_seconds(key, data[key])

        try:
            validate_attempt_limit(data["max_send_attempts"])
        except ValidationException as e:
            raise SettingsValidationError(f"Invalid max_send_attempts: {e}")

        for key in _BOOL_KEYS:
            if not isinstance(data[key], bool):
                raise SettingsValidationError(f"{key} must be true or false")

        for key in ("start_code", "end_code"):
            lines = data[key]
            if not isinstance(lines, list) or not all(isinstance(ln, str) for ln in lines):
                raise SettingsValidationError(f"{key} must be a list of strings")

        delimiter = data["response_delimiter"]
        if not isinstance(delimiter, str) or not delimiter:
            raise SettingsValidationError("response_delimiter must be a non-empty string")

        if data["log_level"] not in LOG_LEVELS:
            raise SettingsValidationError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}"
            )
        fmt = data["serial_log_format"]
        if not isinstance(fmt, str) or "%(message)s" not in fmt:
            raise SettingsValidationError("serial_log_format must contain %(message)s")

        return True


@dataclass(frozen=True)
class SessionConfig:
    """Construction-time configuration for a device session.

    ``test_mode`` skips every transport access and handshake and simulates
    each line with ``test_line_delay``. ``max_send_attempts`` of ``None``
    retries a line until the firmware accepts it.
    """

    test_mode: bool = False
    ack_timeout: float = ACK_TIMEOUT_DEFAULT
    pause_poll_interval: float = PAUSE_POLL_INTERVAL
    idle_poll_interval: float = IDLE_POLL_INTERVAL
    test_line_delay: float = TEST_LINE_DELAY
    max_send_attempts: Optional[int] = None
    response_delimiter: str = RESPONSE_DELIMITER
    wait_for_ready: bool = True
    start_code: Tuple[str, ...] = field(default_factory=tuple)
    end_code: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "ack_timeout", validate_timeout(self.ack_timeout))
        validate_interval(self.pause_poll_interval)
        validate_interval(self.idle_poll_interval)
        validate_interval(self.test_line_delay)
        object.__setattr__(
            self, "max_send_attempts", validate_attempt_limit(self.max_send_attempts)
        )
        object.__setattr__(self, "start_code", tuple(self.start_code))
        object.__setattr__(self, "end_code", tuple(self.end_code))

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "SessionConfig":
        """Build a session configuration from validated settings.

        Keyword overrides win over stored values (e.g. ``test_mode`` from
        the command line); ``None`` overrides are ignored.
        """
        settings.validate()
        values: Dict[str, Any] = {
            key: settings.get(key)
            for key in (
                "test_mode",
                "ack_timeout",
                "pause_poll_interval",
                "idle_poll_interval",
                "test_line_delay",
                "max_send_attempts",
                "response_delimiter",
                "wait_for_ready",
                "start_code",
                "end_code",
            )
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
