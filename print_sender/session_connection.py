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

"""Connection lifecycle and the session thread."""

from __future__ import annotations

import logging
import threading
import time

from print_sender.types import DeviceSessionState, SessionState

from .utils.constants import BAUD_DEFAULT, THREAD_JOIN_TIMEOUT
from .utils.exceptions import PrintSenderException
from .utils.validation import validate_baud_rate, validate_port_name

logger = logging.getLogger(__name__)


class SessionConnectionMixin(DeviceSessionState):
    """Connect/disconnect support for the device session.

    The session thread is the only owner of the transport: it opens it,
    runs every job on it and closes it on the way out.
    """

    def connect(self, port: str, baud: int = BAUD_DEFAULT) -> bool:
        """Start connecting to the printer in the background.

        Args:
            port: Serial port name (e.g., 'COM3' or '/dev/ttyUSB0')
            baud: Baud rate (default: 115200)

        Returns:
            True if a connection attempt was started. The outcome arrives as
            a ``("conn", ...)`` event, or via ``wait_for_connection()``.
        """
        if self._thread is not None and self._thread.is_alive():
            if self.transport is not None:
                logger.info("Serial port is already connected...")
            else:
                logger.info("Session thread already running")
            return False

        if self.config.test_mode:
            logger.info("Test mode: serial port not opened")
            self._start_thread(None, 0)
            return False

        try:
            port = validate_port_name(port)
            baud = validate_baud_rate(baud)
        except PrintSenderException as e:
            logger.error(f"Cannot connect: {e}")
            self._emit("log", f"[connect failed] {e}")
            return False

        self._start_thread(port, baud)
        return True

    def _start_thread(self, port: str | None, baud: int) -> None:
        self._stop_evt = threading.Event()
        self._connected_evt.clear()
        self._set_state(SessionState.CONNECTING if port else SessionState.CONNECTED_IDLE)
        self._thread = threading.Thread(
            target=self._session_loop,
            args=(port, baud, self._stop_evt),
            daemon=True,
            name="PrintSender-Session",
        )
        self._thread.start()

    def _open_transport(self, port: str, baud: int) -> bool:
        logger.info(f"Connecting to printer on port {port}")
        try:
            transport = self._transport_factory(port, baud)
        except (PrintSenderException, OSError) as e:
            logger.error(f"Failed to open serial port, aborting: {e}")
            self._emit("log", f"[connect failed] {e}")
            return False
        self.transport = transport
        self._port = port
        self.signals.set_connected(True)
        self._set_state(SessionState.CONNECTED_IDLE)
        self._connected_evt.set()
        logger.info(f"Connected to port {port} at {baud} baud")
        self._emit("conn", True, port)
        return True

    def _session_loop(self, port: str | None, baud: int, stop_evt: threading.Event) -> None:
        """Session thread: open the port, then run jobs as they are requested.

        ``port`` is None in test mode, where no transport is ever opened.
        """
        logger.debug("Session thread started")
        if port is not None and not self._open_transport(port, baud):
            self._set_state(SessionState.DISCONNECTED)
            self._emit("conn", False, None)
            logger.debug("Session thread stopped")
            return

        self._set_state(SessionState.CONNECTED_IDLE)
        try:
            while not stop_evt.is_set():
                sequence = self.signals.take_job_request()
                if sequence is None:
                    stop_evt.wait(self.config.idle_poll_interval)
                    continue

                self._set_state(SessionState.RUNNING)
                runner = self._run_job(sequence)
                if runner.transport_error is not None:
                    self._emit("log", f"[disconnect] {runner.transport_error}")
                    break
                self._set_state(SessionState.CONNECTED_IDLE)

        except Exception as e:
            logger.error(f"Session thread error: {e}", exc_info=True)
            self._emit("log", f"[worker] Session thread error: {e}")

        finally:
            self._teardown()
            logger.debug("Session thread stopped")

    def _teardown(self) -> None:
        transport = self.transport
        self.transport = None
        was_connected = self.signals.is_connected()
        self.signals.set_connected(False)
        if self.signals.discard_job_request():
            logger.info("Discarded job request that never started")
        if self.signals.is_job_running():
            self.signals.finish_job()
        if transport is not None:
            transport.close()
        self._connected_evt.clear()
        self._port = None
        self._set_state(SessionState.DISCONNECTED)
        if was_connected:
            self._emit("conn", False, None)

    def disconnect(self) -> bool:
        """Stop the session thread and close the port.

        Returns:
            True if a connection was closed, False if there was none
        """
        thread = self._thread
        was_connected = self.signals.is_connected()
        if thread is None or not thread.is_alive():
            self._thread = None
            logger.info("Serial port is already disconnected...")
            return False

        # A pending job must not outlive the connection it was submitted to.
        if self.signals.discard_job_request():
            logger.info("Discarded job request that never started")
        if self.signals.is_job_running():
            self.signals.request_stop()
        self._stop_evt.set()
        if thread is not threading.current_thread():
            thread.join(timeout=THREAD_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"Thread {thread.name} did not terminate")
                transport = self.transport
                if transport is not None:
                    transport.close()
        self._thread = None

        if not was_connected:
            logger.info("Serial port is already disconnected...")
        return was_connected

    def is_connected(self) -> bool:
        return self.signals.is_connected()

    def wait_for_connection(self, timeout: float) -> bool:
        """Block until connected, the attempt fails, or ``timeout`` passes."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._connected_evt.wait(0.01):
                return True
            thread = self._thread
            if thread is None or not thread.is_alive():
                break
        return self.signals.is_connected()
