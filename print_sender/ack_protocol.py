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

"""Per-line send / acknowledge / retry protocol.

A line only counts as delivered when the firmware echoes its line number
(``ok <n>`` or ``skip <n>``). Anything else that looks like an answer is
treated as "not yet delivered" and the identical frame is sent again.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from print_sender.types import AckOutcome, Frame, Transport

from .utils.constants import (
    ACK_TIMEOUT_DEFAULT,
    ACK_TOKEN_PAT,
    BARE_OK_PAT,
    LINE_RESET_COMMAND,
    READ_POLL_INTERVAL,
    READY_MARKERS,
    RESEND_MARKER,
    RESPONSE_DELIMITER,
    TEMPERATURE_MARKER,
)
from .utils.logging_config import SERIAL_LOGGER_NAME

logger = logging.getLogger(__name__)
serial_logger = logging.getLogger(SERIAL_LOGGER_NAME)


def classify_response(response: str, line_number: Optional[int]) -> Optional[AckOutcome]:
    """Classify one firmware response line.

    Args:
        response: Line read from the firmware
        line_number: Number of the frame in flight, or None when any
            ``ok`` acknowledges it (line-number reset)

    Returns:
        The outcome, or None for content that does not bear on the frame
    """
    if line_number is None:
        if BARE_OK_PAT.search(response):
            return AckOutcome.ACCEPTED
    else:
        for match in ACK_TOKEN_PAT.finditer(response):
            if int(match.group(2)) == line_number:
                return AckOutcome.ACCEPTED
    if RESEND_MARKER in response or BARE_OK_PAT.search(response):
        return AckOutcome.RESEND
    if TEMPERATURE_MARKER in response:
        return AckOutcome.TEMPERATURE_UPDATE
    return None


def is_ready_marker(response: str) -> bool:
    return any(marker in response for marker in READY_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times one frame may be sent.

    ``max_attempts=None`` retries until the firmware accepts the line,
    which is what the firmware's own resend protocol assumes.
    """

    max_attempts: Optional[int] = None

    @property
    def unbounded(self) -> bool:
        return self.max_attempts is None

    def allows(self, attempt: int) -> bool:
        """True if attempt number ``attempt`` (1-based) may be made."""
        return self.max_attempts is None or attempt <= self.max_attempts


@dataclass(frozen=True)
class DeliveryResult:
    accepted: bool
    attempts: int
    last_outcome: Optional[AckOutcome]
    abandoned: bool = False


class AckProtocol:
    """Sends frames over a transport and waits for line-numbered acks.

    Only the session thread calls into this class; the transport's own
    lock serializes any other accessor.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout: float = ACK_TIMEOUT_DEFAULT,
        delimiter: str = RESPONSE_DELIMITER,
        stop_requested: Callable[[], bool] = lambda: False,
        read_poll_interval: float = READ_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.timeout = timeout
        self.delimiter = delimiter
        self._stop_requested = stop_requested
        self._read_poll_interval = read_poll_interval
        self._clock = clock

    def _read_line(self) -> Optional[str]:
        line = self.transport.read_line_until(self.delimiter)
        if line is None:
            return None
        line = line.strip()
        if line:
            serial_logger.debug(f"<< {line}")
        return line or None

    def _write_frame(self, frame: Frame) -> None:
        payload = frame.encode()
        serial_logger.debug(f">> {frame.payload}")
        self.transport.write(payload)

    def send_and_await(self, frame: Frame, timeout: Optional[float] = None) -> AckOutcome:
        """Write ``frame`` once and wait for the firmware's verdict.

        Temperature reports restart the timeout clock; the firmware is busy
        heating, not idle. A stop request ends the wait early and reports
        ``TIMED_OUT`` so the caller can abandon the line.

        Raises:
            OSError / SerialWriteError: If the transport write fails
        """
        if timeout is None:
            timeout = self.timeout
        self._write_frame(frame)
        started = self._clock()

        while True:
            response = self._read_line()
            if response is None:
                if self._clock() - started >= timeout:
                    logger.debug(f"Timed out waiting for ack of {frame.payload!r}")
                    return AckOutcome.TIMED_OUT
                if self._stop_requested():
                    logger.debug(f"Stop requested while waiting for {frame.payload!r}")
                    return AckOutcome.TIMED_OUT
                time.sleep(self._read_poll_interval)
                continue

            outcome = classify_response(response, frame.line_number)
            if outcome is AckOutcome.ACCEPTED or outcome is AckOutcome.RESEND:
                return outcome
            if outcome is AckOutcome.TEMPERATURE_UPDATE:
                started = self._clock()
                continue
            logger.debug(f"Ignoring firmware response: {response}")

    def deliver(self, frame: Frame, policy: RetryPolicy = RetryPolicy()) -> DeliveryResult:
        """Send ``frame`` until accepted, stopped, or out of attempts.

        Every attempt writes byte-identical data.
        """
        attempt = 0
        outcome: Optional[AckOutcome] = None
        while True:
            if self._stop_requested():
                logger.info(f"Abandoning {frame.payload!r}: stop requested")
                return DeliveryResult(False, attempt, outcome, abandoned=True)
            attempt += 1
            if not policy.allows(attempt):
                logger.error(
                    f"Giving up on {frame.payload!r} after {attempt - 1} attempts"
                )
                return DeliveryResult(False, attempt - 1, outcome)
            outcome = self.send_and_await(frame)
            if outcome is AckOutcome.ACCEPTED:
                return DeliveryResult(True, attempt, outcome)
            logger.info(f"Line {frame.line_number} not acknowledged ({outcome.value}), resending")

    def await_ready(self) -> bool:
        """Block until the firmware announces it is ready.

        Returns:
            True once a ready marker arrives, False if a stop came first
        """
        logger.info("Waiting for printer to report ready")
        while True:
            if self._stop_requested():
                return False
            response = self._read_line()
            if response is None:
                time.sleep(self._read_poll_interval)
                continue
            if is_ready_marker(response):
                logger.info("Printer ready")
                return True

    def reset_line_numbers(self, policy: RetryPolicy = RetryPolicy()) -> DeliveryResult:
        """Send the line-number reset and wait for any ``ok``."""
        frame = Frame(line_number=None, payload=LINE_RESET_COMMAND)
        return self.deliver(frame, policy)
