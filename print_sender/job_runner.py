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

"""Runs one print job: handshake, then every line in order."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Sequence

from print_sender.types import EventSink, JobState, Transport

from .ack_protocol import AckProtocol, RetryPolicy
from .control_signals import ControlSignals
from .line_framer import LineFramer
from .utils.config import SessionConfig
from .utils.exceptions import FramingError, SerialException

logger = logging.getLogger(__name__)


def _discard_event(*_event: Any) -> None:
    return None


class JobRunner:
    """Job state machine for a single job.

    ``IDLE -> AWAITING_READY -> STREAMING <-> PAUSED -> COMPLETED | STOPPED``,
    or ``FAILED`` when a line runs out of attempts or the link breaks.
    Pause and stop are checked before every source entry, comments
    included.
    """

    def __init__(
        self,
        signals: ControlSignals,
        config: SessionConfig,
        transport: Optional[Transport] = None,
        emit: EventSink = _discard_event,
    ):
        self.signals = signals
        self.config = config
        self.transport = transport
        self._emit = emit
        self._state = JobState.IDLE
        self.policy = RetryPolicy(config.max_send_attempts)
        self.frames_sent = 0
        self.transport_error: BaseException | None = None
        self._protocol: Optional[AckProtocol] = None

    @property
    def state(self) -> JobState:
        return self._state

    def _set_state(self, state: JobState, detail: Any = None) -> None:
        if state is self._state:
            return
        logger.debug(f"Job state {self._state.value} -> {state.value}")
        self._state = state
        self._emit("job_state", state.value, detail)

    def run(
        self,
        sequence: Sequence[str],
        start_code: Sequence[str] = (),
        end_code: Sequence[str] = (),
    ) -> JobState:
        """Run a job to its end and return the terminal state.

        ``job_running`` is always cleared on the way out.
        """
        self.frames_sent = 0
        self.transport_error = None
        total = len(start_code) + len(sequence) + len(end_code)
        logger.info(f"Starting print job ({len(sequence)} lines)")
        try:
            self._set_state(JobState.AWAITING_READY)
            if not self.config.test_mode:
                terminal = self._handshake()
                if terminal is not None:
                    return self._finish(terminal)

            framer = LineFramer()
            self._set_state(JobState.STREAMING)
            done = 0
            for section in (start_code, sequence, end_code):
                for raw in section:
                    terminal = self._process_entry(framer, raw)
                    if terminal is not None:
                        return self._finish(terminal)
                    done += 1
                    self._emit("progress", done, total)
            return self._finish(JobState.COMPLETED)

        except FramingError as e:
            logger.error(f"Print job failed: {e}")
            return self._finish(JobState.FAILED, str(e))
        except (OSError, SerialException) as e:
            logger.error(f"Print job failed, serial link error: {e}")
            self.transport_error = e
            return self._finish(JobState.FAILED, str(e))
        finally:
            self.signals.finish_job()

    def _finish(self, state: JobState, detail: Any = None) -> JobState:
        if state is JobState.COMPLETED:
            logger.info(f"Print job completed ({self.frames_sent} lines sent)")
        elif state is JobState.STOPPED:
            logger.info("Printing stopped")
        else:
            logger.error(f"Print job failed after {self.frames_sent} lines")
        self._set_state(state, detail)
        return state

    def _handshake(self) -> Optional[JobState]:
        """Wait for the ready marker and reset firmware line numbers.

        Returns a terminal state if the handshake did not complete.
        """
        if self.transport is None:
            raise SerialException("No transport for a non-test job")
        self._protocol = AckProtocol(
            self.transport,
            timeout=self.config.ack_timeout,
            delimiter=self.config.response_delimiter,
            stop_requested=self.signals.is_stop_requested,
        )
        if self.config.wait_for_ready and not self._protocol.await_ready():
            return JobState.STOPPED
        result = self._protocol.reset_line_numbers(self.policy)
        if result.abandoned:
            return JobState.STOPPED
        if not result.accepted:
            return JobState.FAILED
        return None

    def _wait_while_paused(self) -> None:
        if not self.signals.is_pause_requested() or self.signals.is_stop_requested():
            return
        logger.info("Printing paused...")
        self._set_state(JobState.PAUSED)
        while self.signals.is_pause_requested() and not self.signals.is_stop_requested():
            time.sleep(self.config.pause_poll_interval)
        if not self.signals.is_stop_requested():
            logger.info("Printing resumed")
            self._set_state(JobState.STREAMING)

    def _process_entry(self, framer: LineFramer, raw: str) -> Optional[JobState]:
        self._wait_while_paused()
        if self.signals.is_stop_requested():
            return JobState.STOPPED

        frame = framer.frame(raw)
        if frame.is_comment:
            return None

        if self.config.test_mode:
            time.sleep(self.config.test_line_delay)
        else:
            if self._protocol is None:
                raise SerialException("Handshake did not run before streaming")
            result = self._protocol.deliver(frame, self.policy)
            if result.abandoned:
                return JobState.STOPPED
            if not result.accepted:
                return JobState.FAILED
            if result.attempts > 1:
                logger.info(f"Line {frame.line_number} sent after {result.attempts} attempts")
        self.frames_sent += 1
        logger.debug(f"Line {frame.line_number} sent successfully")
        return None
