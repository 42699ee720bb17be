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
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import enum
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, TypeAlias

from print_sender.utils.constants import LINE_ENCODING, LINE_TERMINATOR

EventSink: TypeAlias = Callable[..., None]


class Transport(Protocol):
    """Duplex byte channel to the printer firmware."""

    def write(self, data: bytes) -> None: ...
    def read_line_until(self, delimiter: str) -> str | None: ...
    def close(self) -> None: ...


TransportFactory: TypeAlias = Callable[[str, int], Transport]


class AckOutcome(enum.Enum):
    """Classification of one firmware response to one sent line."""

    ACCEPTED = "accepted"
    RESEND = "resend"
    TEMPERATURE_UPDATE = "temperature_update"
    TIMED_OUT = "timed_out"


class JobState(enum.Enum):
    IDLE = "idle"
    AWAITING_READY = "awaiting_ready"
    STREAMING = "streaming"
    PAUSED = "paused"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.STOPPED, JobState.FAILED)


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED_IDLE = "connected_idle"
    JOB_REQUESTED = "job_requested"
    RUNNING = "running"


@dataclass(frozen=True)
class Frame:
    """One line-numbered, transmit-ready command.

    Comment and blank entries produce frames with ``is_comment`` set and no
    line number; they are never transmitted.
    """

    line_number: int | None
    payload: str
    is_comment: bool = False

    @property
    def text(self) -> str:
        if self.payload.endswith(LINE_TERMINATOR):
            return self.payload
        return self.payload + LINE_TERMINATOR

    def encode(self) -> bytes:
        return self.text.encode(LINE_ENCODING, errors="replace")


@dataclass(frozen=True)
class ControlState:
    """Point-in-time copy of the shared control flags."""

    connected: bool = False
    job_running: bool = False
    job_requested: bool = False
    pause_requested: bool = False
    stop_requested: bool = False


class DeviceSessionState:
    """Attributes shared by the device session mixins."""

    event_q: queue.Queue[Any] | None
    config: Any
    signals: Any
    transport: Transport | None
    _transport_factory: TransportFactory
    _thread: threading.Thread | None
    _stop_evt: threading.Event
    _connected_evt: threading.Event
    _state: SessionState
    _state_lock: threading.Lock
    _port: str | None
    _job_state: JobState
    _start_code: Sequence[str]
    _end_code: Sequence[str]

    def _emit(self, *event: Any) -> None:
        raise NotImplementedError

    def _set_state(self, state: SessionState) -> None:
        raise NotImplementedError

    def _run_job(self, sequence: Sequence[str]) -> Any:
        raise NotImplementedError
