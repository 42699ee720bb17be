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

"""pyserial-backed transport for the printer link."""

from __future__ import annotations

import logging
import threading
from typing import Any

import serial

from .utils.constants import (
    BAUD_DEFAULT,
    SERIAL_READ_CHUNK,
    SERIAL_TIMEOUT,
    SERIAL_WRITE_TIMEOUT,
)
from .utils.exceptions import SerialConnectionError, SerialReadError, SerialWriteError
from .utils.validation import validate_baud_rate, validate_port_name

logger = logging.getLogger(__name__)


class SerialTransport:
    """Line-oriented wrapper around an open ``serial.Serial``.

    Reads are short-blocking (``SERIAL_TIMEOUT``) and buffered so that a
    response split across reads comes back as one line.
    """

    def __init__(self, ser: Any, port: str | None = None):
        self.ser = ser
        self.port = port
        self._buf = b""
        self._lock = threading.Lock()

    @classmethod
    def open(cls, port: str, baud: int = BAUD_DEFAULT) -> "SerialTransport":
        """Open ``port`` at ``baud``.

        Raises:
            SerialConnectionError: If the port cannot be opened
            InvalidParameterError: If the parameters are invalid
        """
        port = validate_port_name(port)
        baud = validate_baud_rate(baud)
        try:
            ser = serial.Serial(
                port,
                baudrate=baud,
                timeout=SERIAL_TIMEOUT,
                write_timeout=SERIAL_WRITE_TIMEOUT,
            )
        except (serial.SerialException, OSError) as e:
            raise SerialConnectionError(f"Failed to open {port}: {e}")

        try:
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except serial.SerialException as e:
            logger.warning(f"Failed to reset buffers: {e}")

        logger.info(f"Opened {port} at {baud} baud")
        return cls(ser, port)

    @property
    def is_open(self) -> bool:
        return self.ser is not None and bool(self.ser.is_open)

    def write(self, data: bytes) -> None:
        """Write all of ``data``.

        Raises:
            SerialWriteError: On timeout or a broken link
        """
        with self._lock:
            if not self.is_open:
                raise SerialWriteError("Serial port is not open")
            try:
                total = 0
                length = len(data)
                while total < length:
                    written = self.ser.write(data[total:])
                    if not written:
                        raise serial.SerialTimeoutException("Write returned 0 bytes")
                    total += written
                self.ser.flush()
            except serial.SerialTimeoutException as e:
                raise SerialWriteError(f"Write timeout: {e}")
            except (serial.SerialException, OSError) as e:
                raise SerialWriteError(f"Serial write error: {e}")

    def read_line_until(self, delimiter: str) -> str | None:
        """Return the next complete line, or None if none is buffered yet.

        Raises:
            SerialReadError: If the port fails while reading
        """
        delim = delimiter.encode("ascii")
        with self._lock:
            if delim not in self._buf:
                if not self.is_open:
                    raise SerialReadError("Serial port is not open")
                try:
                    waiting = self.ser.in_waiting
                    chunk = self.ser.read(max(1, min(waiting, SERIAL_READ_CHUNK)))
                except (serial.SerialException, OSError) as e:
                    raise SerialReadError(f"Serial read error: {e}")
                if chunk:
                    self._buf += chunk
            if delim not in self._buf:
                return None
            line, self._buf = self._buf.split(delim, 1)
        return line.decode("utf-8", errors="replace").strip()

    def close(self) -> None:
        """Close the port. Closing twice is harmless."""
        with self._lock:
            if self.ser is None:
                return
            try:
                self.ser.close()
                logger.info("Serial port closed")
            except (serial.SerialException, OSError) as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self.ser = None
                self._buf = b""
