#!/usr/bin/env python3
# Print Sender (3D printer G-code streamer)
# Copyright (C) 2026 Bob Kolbasowski
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Optional (not required by the license): If you make improvements, please consider
# contributing them back upstream (e.g., via a pull request) so others can benefit.
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Logging setup for Print Sender.

Log files live in ``logs/`` next to the settings file:

- ``print_sender.log``: every record of the ``print_sender`` logger tree
- ``errors.log``: warnings and errors with source locations
- ``serial.log``: TX/RX lines from ``print_sender.serial``, one per line

Console level and the serial log are driven by the ``log_level``,
``serial_log`` and ``serial_log_format`` settings.
"""

from __future__ import annotations

import logging
import logging.handlers
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .config import Settings, get_settings_path
from .constants import LOG_DIRNAME, SERIAL_LOG_FORMAT

APP_LOGGER_NAME = "print_sender"
SERIAL_LOGGER_NAME = f"{APP_LOGGER_NAME}.serial"

CONSOLE_HANDLER_NAME = "print_sender_console"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


@dataclass(frozen=True)
class LogFileSpec:
    handler_name: str
    filename: str
    level: int
    max_bytes: int
    backup_count: int
    fmt: str
    datefmt: str | None = None


APP_LOG_FILES = (
    LogFileSpec(
        "print_sender_app_file", "print_sender.log", logging.DEBUG, 10_000_000, 5,
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    ),
    LogFileSpec(
        "print_sender_error_file", "errors.log", logging.WARNING, 2_000_000, 5,
        "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d\n%(message)s\n",
    ),
)

SERIAL_LOG_FILE = LogFileSpec(
    "print_sender_serial_file", "serial.log", logging.DEBUG, 5_000_000, 3,
    SERIAL_LOG_FORMAT, "%Y-%m-%d %H:%M:%S",
)


def _find_handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == name:
            return handler
    return None


def _open_log_file(spec: LogFileSpec, log_dir: Path, fmt: str | None = None) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_dir / spec.filename,
        maxBytes=spec.max_bytes,
        backupCount=spec.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(spec.level)
    handler.setFormatter(logging.Formatter(fmt or spec.fmt, datefmt=spec.datefmt))
    handler.set_name(spec.handler_name)
    return handler


def get_log_dir(base_dir: Path | None = None) -> Path:
    """Resolve (and create) the log directory under ``base_dir``.

    ``base_dir`` defaults to the settings directory. Falls back to the
    temp directory when it cannot be created.
    """
    base = Path(base_dir) if base_dir is not None else get_settings_path().parent
    log_dir = base / LOG_DIRNAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        log_dir = Path(tempfile.gettempdir()) / "print_sender_logs"
        log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_logging(
    verbose: bool = False,
    log_dir: Path | None = None,
    *,
    console_level: str = "INFO",
    serial_traffic: bool = True,
    serial_format: str = SERIAL_LOG_FORMAT,
) -> logging.Logger:
    """Install console and rotating file handlers on the app logger.

    Handlers are named and only created once; calling again updates the
    console level and the serial log in place.

    Args:
        verbose: Console shows DEBUG regardless of ``console_level``
        log_dir: Directory for log files (default: ``get_log_dir()``)
        console_level: Level name for the console handler
        serial_traffic: Write TX/RX lines to serial.log
        serial_format: Formatter string for serial.log
    """
    log_dir = Path(log_dir) if log_dir is not None else get_log_dir()

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(logging.DEBUG)
    app_logger.propagate = False

    console = _find_handler(app_logger, CONSOLE_HANDLER_NAME)
    if console is None:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console.set_name(CONSOLE_HANDLER_NAME)
        app_logger.addHandler(console)
    console.setLevel(logging.DEBUG if verbose else getattr(logging, console_level.upper()))

    for spec in APP_LOG_FILES:
        if _find_handler(app_logger, spec.handler_name) is None:
            app_logger.addHandler(_open_log_file(spec, log_dir))

    serial_logger = logging.getLogger(SERIAL_LOGGER_NAME)
    serial_handler = _find_handler(serial_logger, SERIAL_LOG_FILE.handler_name)
    if serial_traffic:
        serial_logger.setLevel(logging.DEBUG)
        if serial_handler is None:
            serial_logger.addHandler(_open_log_file(SERIAL_LOG_FILE, log_dir, serial_format))
        else:
            serial_handler.setFormatter(
                logging.Formatter(serial_format, datefmt=SERIAL_LOG_FILE.datefmt)
            )
    else:
        # TX/RX lines are DEBUG records; INFO drops them from every log.
        serial_logger.setLevel(logging.INFO)
        if serial_handler is not None:
            serial_logger.removeHandler(serial_handler)
            serial_handler.close()

    return app_logger


def configure_logging(settings: Settings, verbose: bool = False) -> logging.Logger:
    """Set up logging from ``settings``, with logs next to its file."""
    return setup_logging(
        verbose,
        log_dir=get_log_dir(settings.directory),
        console_level=settings.get("log_level"),
        serial_traffic=settings.get("serial_log"),
        serial_format=settings.get("serial_log_format"),
    )
