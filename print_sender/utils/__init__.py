"""Utility modules for Print Sender."""

from .constants import *
from .exceptions import *
from .validation import *
from .config import SessionConfig, Settings, get_settings_path

__all__ = [
    # Config
    "SessionConfig",
    "Settings",
    "get_settings_path",
]
