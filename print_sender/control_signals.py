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

"""Shared control flags between the caller and the session thread."""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from print_sender.types import ControlState

from .utils.constants import ERROR_JOB_RUNNING, ERROR_NOT_CONNECTED

logger = logging.getLogger(__name__)


class ControlSignals:
    """Thread-safe job and connection flags.

    Every read and write goes through ``_lock``. Requests are
    fire-and-forget: they flip a flag and return, the session thread
    observes them between lines and inside its wait loops.
    """

    def __init__(self, test_mode: bool = False):
        self._lock = threading.Lock()
        self._test_mode = bool(test_mode)
        self._connected = False
        self._job_running = False
        self._job_requested = False
        self._pause_requested = False
        self._stop_requested = False
        self._sequence: tuple[str, ...] = ()

    # ========================================================================
    # CALLER SIDE
    # ========================================================================

    def request_stop(self) -> None:
        """Request the running job to stop; a pending pause is cleared."""
        with self._lock:
            self._pause_requested = False
            self._stop_requested = True

    def request_pause(self) -> None:
        with self._lock:
            self._pause_requested = True

    def request_resume(self) -> None:
        with self._lock:
            self._pause_requested = False

    def submit_job(self, sequence: Sequence[str]) -> bool:
        """Queue ``sequence`` as the next job.

        Returns:
            True if accepted. False, with nothing changed, when a job is
            already running or the session is neither connected nor in
            test mode.
        """
        with self._lock:
            if self._job_running:
                logger.warning(f"Job rejected: {ERROR_JOB_RUNNING}")
                return False
            if not self._connected and not self._test_mode:
                logger.warning(f"Job rejected: {ERROR_NOT_CONNECTED}")
                return False
            if self._job_requested:
                logger.info("Replacing pending job request that has not started")
            self._sequence = tuple(sequence)
            self._job_requested = True
            self._pause_requested = False
            self._stop_requested = False
            return True

    # ========================================================================
    # SESSION SIDE
    # ========================================================================

    def take_job_request(self) -> tuple[str, ...] | None:
        """Consume a pending job request and mark the job running.

        Returns the job's sequence, or None when nothing is pending.
        """
        with self._lock:
            if not self._job_requested:
                return None
            self._job_requested = False
            self._job_running = True
            sequence = self._sequence
            self._sequence = ()
            return sequence

    def finish_job(self) -> None:
        """Mark the current job ended and clear its stop and pause requests."""
        with self._lock:
            self._job_running = False
            self._stop_requested = False
            self._pause_requested = False

    def discard_job_request(self) -> bool:
        """Drop a submitted job the session thread has not picked up.

        Returns True if a pending request was dropped.
        """
        with self._lock:
            pending = self._job_requested
            self._job_requested = False
            self._sequence = ()
            return pending

    def set_connected(self, connected: bool) -> None:
        with self._lock:
            self._connected = bool(connected)

    # ========================================================================
    # READS
    # ========================================================================

    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    def is_job_running(self) -> bool:
        with self._lock:
            return self._job_running

    def is_job_requested(self) -> bool:
        with self._lock:
            return self._job_requested

    def is_pause_requested(self) -> bool:
        with self._lock:
            return self._pause_requested

    def is_stop_requested(self) -> bool:
        with self._lock:
            return self._stop_requested

    @property
    def test_mode(self) -> bool:
        with self._lock:
            return self._test_mode

    def snapshot(self) -> ControlState:
        with self._lock:
            return ControlState(
                connected=self._connected,
                job_running=self._job_running,
                job_requested=self._job_requested,
                pause_requested=self._pause_requested,
                stop_requested=self._stop_requested,
            )
