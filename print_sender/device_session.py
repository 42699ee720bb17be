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

"""Printer session: public control surface over the streaming core.

The caller's thread only flips control flags and submits jobs. The
session thread owns the serial transport and runs the job state machine.
"""

import logging
import queue
import threading
import time
from typing import Any, Optional, Sequence

from .control_signals import ControlSignals
from .job_runner import JobRunner
from .serial_transport import SerialTransport
from .session_connection import SessionConnectionMixin
from .types import JobState, SessionState, TransportFactory
from .utils.config import SessionConfig

logger = logging.getLogger(__name__)


class DeviceSession(SessionConnectionMixin):
    """Streams G-code jobs to one printer.

    Only one job runs at a time. ``pause()``, ``resume()`` and ``stop()``
    never block and may be called from any thread while a job runs.

    Can be used as a context manager for automatic cleanup.

    Example:
        with DeviceSession(event_q) as session:
            session.connect('/dev/ttyUSB0', 115200)
            session.wait_for_connection(5.0)
            session.submit_job(lines)
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        event_q: Optional[queue.Queue] = None,
        transport_factory: TransportFactory = SerialTransport.open,
    ):
        """Initialize the session.

        Args:
            config: Runtime configuration (defaults to ``SessionConfig()``)
            event_q: Optional queue receiving ``(kind, ...)`` event tuples
            transport_factory: Opens a transport for ``(port, baud)``
        """
        self.config = config or SessionConfig()
        self.event_q = event_q
        self.signals = ControlSignals(test_mode=self.config.test_mode)
        self.transport = None
        self._transport_factory = transport_factory

        self._thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        self._connected_evt = threading.Event()
        self._state = SessionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._port: Optional[str] = None

        self._job_state = JobState.IDLE
        self._code_lock = threading.Lock()
        self._start_code: Sequence[str] = tuple(self.config.start_code)
        self._end_code: Sequence[str] = tuple(self.config.end_code)

        if self.config.test_mode:
            logger.info("Proceeding in test mode")

    # ========================================================================
    # CONTEXT MANAGER SUPPORT
    # ========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.disconnect()
        except Exception as e:
            logger.error(f"Error during cleanup: {e}")
        return False

    # ========================================================================
    # STATE
    # ========================================================================

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            state = self._state
        if state is SessionState.CONNECTED_IDLE and self.signals.is_job_requested():
            return SessionState.JOB_REQUESTED
        return state

    @property
    def job_state(self) -> JobState:
        """State of the running job, or the terminal state of the last one."""
        with self._state_lock:
            return self._job_state

    @property
    def port(self) -> Optional[str]:
        return self._port

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            if state is self._state:
                return
            logger.debug(f"Session state {self._state.value} -> {state.value}")
            self._state = state
        self._emit("session_state", state.value)

    def _emit(self, *event: Any) -> None:
        if event and event[0] == "job_state":
            with self._state_lock:
                self._job_state = JobState(event[1])
        if self.event_q is None:
            return
        try:
            self.event_q.put_nowait(event)
        except queue.Full:
            logger.debug(f"Event queue full; dropped {event[0]} event")

    # ========================================================================
    # JOB CONTROL
    # ========================================================================

    def submit_job(self, sequence: Sequence[str]) -> bool:
        """Submit a G-code sequence as the next job.

        Returns:
            True if accepted; False if a job is running, the session is not
            connected (outside test mode) or the sequence is not all text
        """
        if isinstance(sequence, str) or not all(isinstance(ln, str) for ln in sequence):
            logger.warning("Job rejected: sequence must be a list of strings")
            return False
        if self.config.test_mode:
            self._ensure_test_worker()
        if not self.signals.submit_job(sequence):
            return False
        self._emit("job_requested", len(sequence))
        logger.info(f"Job submitted ({len(sequence)} lines)")
        return True

    def _ensure_test_worker(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._start_thread(None, 0)

    def pause(self) -> None:
        self.signals.request_pause()

    def resume(self) -> None:
        self.signals.request_resume()

    def stop(self) -> None:
        self.signals.request_stop()

    def is_job_running(self) -> bool:
        return self.signals.is_job_running()

    def is_paused(self) -> bool:
        return self.job_state is JobState.PAUSED

    def set_start_code(self, lines: Sequence[str]) -> None:
        """G-code sent before every job's own lines."""
        with self._code_lock:
            self._start_code = tuple(lines)

    def set_end_code(self, lines: Sequence[str]) -> None:
        """G-code sent after a job's lines when the job was not stopped."""
        with self._code_lock:
            self._end_code = tuple(lines)

    def wait_for_idle(self, timeout: float) -> bool:
        """Block until no job is requested or running, or ``timeout`` passes."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.signals.is_job_requested() and not self.signals.is_job_running():
                return True
            time.sleep(0.01)
        return not self.signals.is_job_requested() and not self.signals.is_job_running()

    def _run_job(self, sequence: Sequence[str]) -> JobRunner:
        with self._code_lock:
            start_code = self._start_code
            end_code = self._end_code
        runner = JobRunner(
            self.signals,
            self.config,
            transport=None if self.config.test_mode else self.transport,
            emit=self._emit,
        )
        runner.run(sequence, start_code=start_code, end_code=end_code)
        return runner
