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

"""Constants and configuration values for Print Sender.

This module centralizes all magic numbers, default values, and protocol
tokens used throughout the application.
"""

import re

# ============================================================================
# SERIAL COMMUNICATION CONSTANTS
# ============================================================================

BAUD_DEFAULT = 115200
"""Default baud rate for printer serial communication."""

VALID_BAUD_RATES = (9600, 19200, 38400, 57600, 115200, 230400, 250000)
"""Baud rates accepted by the validation helpers."""

SERIAL_TIMEOUT = 0.05
"""Read timeout (seconds) so a line read never blocks for long."""

SERIAL_WRITE_TIMEOUT = 0.5
"""Write timeout (seconds) before a write is treated as a broken link."""

SERIAL_READ_CHUNK = 256
"""Maximum bytes pulled from the port per read call."""

THREAD_JOIN_TIMEOUT = 2.0
"""Seconds to wait for the session thread on disconnect."""

# ============================================================================
# LINE PROTOCOL
# ============================================================================

RESPONSE_DELIMITER = "\r"
"""Firmware responses are terminated by a carriage return."""

LINE_TERMINATOR = "\n"
"""Outbound frames end with a single newline."""

LINE_ENCODING = "ascii"
"""Wire encoding for outbound frames."""

COMMENT_PREFIX = ";"
"""Start of a G-code comment (whole-line or inline)."""

BOM_ARTIFACTS = ("\ufeff", "\u00ef\u00bb\u00bf")
"""Byte-order marks as they appear after decoding (UTF-8 BOM, or as latin-1)."""

LINE_RESET_COMMAND = "M110 N0"
"""Resets the firmware's expected line number before streaming."""

READY_MARKERS = ("wait", "start")
"""Tokens announcing the firmware has booted and accepts commands."""

TEMPERATURE_MARKER = "T:"
"""Temperature telemetry; proves the firmware is alive but busy."""

RESEND_MARKER = "Resend"
"""Firmware request to retransmit the current line."""

LINE_NUMBER_TOKEN_PAT = re.compile(r"^N(\d+)(?=\s|$)", re.IGNORECASE)
"""Explicit line-number prefix at the start of a frame payload."""

ACK_TOKEN_PAT = re.compile(r"\b(ok|skip)\s+(\d+)\b")
"""Line-number bearing acknowledgment, e.g. ``ok 12`` or ``skip 12``."""

BARE_OK_PAT = re.compile(r"\bok\b")
"""Any ``ok`` token regardless of line number."""

# ============================================================================
# TIMING
# ============================================================================

ACK_TIMEOUT_DEFAULT = 10.0
"""Seconds of firmware silence before a line is resent."""

PAUSE_POLL_INTERVAL = 0.01
"""Sleep (seconds) between checks while a job is paused."""

IDLE_POLL_INTERVAL = 0.05
"""Sleep (seconds) between job-request checks while idle."""

READ_POLL_INTERVAL = 0.005
"""Sleep (seconds) after an empty read inside a wait loop."""

TEST_LINE_DELAY = 0.05
"""Fabricated per-line delay (seconds) in test mode."""

# ============================================================================
# FILE PATHS
# ============================================================================

SETTINGS_FILENAME = "settings.json"
"""Name of settings file."""

SETTINGS_BACKUP_SUFFIX = ".backup"
"""Suffix for settings backup file."""

SETTINGS_TEMP_SUFFIX = ".tmp"
"""Suffix for temporary settings file during atomic write."""

CONFIG_DIR_ENV = "PRINT_SENDER_CONFIG_DIR"
"""Environment variable overriding the settings directory."""

LOG_DIRNAME = "logs"
"""Log directory, created next to the settings file."""

# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
"""Accepted console log levels."""

SERIAL_LOG_FORMAT = "%(asctime)s.%(msecs)03d %(message)s"
"""Default format of serial.log lines (one TX or RX line each)."""

# ============================================================================
# ERROR MESSAGES
# ============================================================================

ERROR_NOT_CONNECTED = "Not connected to printer"
ERROR_JOB_RUNNING = "A print job is already running"
