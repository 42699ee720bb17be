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

"""Command-line entry point: stream one G-code file to a printer."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Sequence

from .device_session import DeviceSession
from .types import JobState
from .utils.config import SessionConfig, Settings
from .utils.exceptions import PrintSenderException
from .utils.logging_config import configure_logging, get_log_dir, setup_logging

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="print_sender",
        description="Stream a G-code file to a 3D printer over serial.",
    )
    parser.add_argument("gcode_file", help="G-code file to stream")
    parser.add_argument("port", nargs="?", default=None, help="serial device path (default: last used)")
    parser.add_argument("-b", "--baud", type=int, default=None, help="baud rate")
    parser.add_argument("--timeout", type=float, default=None, help="seconds to wait for an ack before resending")
    parser.add_argument("--max-attempts", type=int, default=None, help="send attempts per line (0 = unlimited)")
    parser.add_argument("--test-mode", action="store_true", default=None, help="simulate the printer, no serial I/O")
    parser.add_argument("--settings", default=None, help="settings file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output on the console")
    return parser


def read_gcode_file(path: str) -> list[str]:
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
        return f.read().splitlines()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings(args.settings)
    try:
        settings.load()
        settings.validate()
    except PrintSenderException as e:
        setup_logging(verbose=args.verbose, log_dir=get_log_dir(settings.directory))
        logger.error(str(e))
        return 2
    configure_logging(settings, verbose=args.verbose)

    try:
        config = SessionConfig.from_settings(
            settings,
            test_mode=args.test_mode,
            ack_timeout=args.timeout,
            max_send_attempts=args.max_attempts,
        )
        lines = read_gcode_file(args.gcode_file)
    except (PrintSenderException, OSError) as e:
        logger.error(str(e))
        return 2

    port = args.port or settings.get("last_port") or ""
    baud = args.baud or settings.get("baud_rate")

    session = DeviceSession(config)
    signal.signal(signal.SIGINT, lambda *_: session.stop())

    with session:
        if not config.test_mode:
            if not port:
                logger.error("No serial port given")
                return 2
            if not session.connect(port, baud) or not session.wait_for_connection(CONNECT_TIMEOUT):
                logger.error(f"Could not connect to {port}")
                return 1
            settings.remember_connection(port, baud)

        if not session.submit_job(lines):
            return 1
        while not session.wait_for_idle(0.5):
            if not config.test_mode and not session.is_connected():
                break

    state = session.job_state
    logger.info(f"Job finished: {state.value}")
    return 0 if state is JobState.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
