"""Shared fixtures: an in-memory printer firmware speaking the line protocol."""

from __future__ import annotations

import re
import threading
import time
from collections import deque
from typing import Callable, Iterable, List, Optional

import pytest

from print_sender.control_signals import ControlSignals
from print_sender.utils.config import SessionConfig

LINE_NUMBER_PAT = re.compile(r"^N(\d+)\b")

Responder = Callable[[str, int], Iterable[str]]


def ok_responder(line: str, count: int) -> list[str]:
    """Acknowledge every line with its own number, bare ``ok`` otherwise."""
    match = LINE_NUMBER_PAT.match(line)
    if match:
        return [f"ok {match.group(1)}"]
    return ["ok"]


def line_number_of(data: bytes) -> Optional[int]:
    match = LINE_NUMBER_PAT.match(data.decode("ascii"))
    return int(match.group(1)) if match else None


class FakeFirmware:
    """Scripted printer firmware.

    Every write is recorded and answered by ``responder(line, write_count)``;
    answers are queued and handed out one per ``read_line_until`` call.
    """

    def __init__(self, responder: Responder = ok_responder, boot: Iterable[str] = ("start",)) -> None:
        self.responder = responder
        self.written: List[bytes] = []
        self.reads = 0
        self.closed = False
        self.write_error: Optional[BaseException] = None
        self._lines: deque[str] = deque(boot)
        self._lock = threading.Lock()

    def write(self, data: bytes) -> None:
        with self._lock:
            if self.write_error is not None:
                raise self.write_error
            self.written.append(bytes(data))
            count = len(self.written)
        replies = list(self.responder(data.decode("ascii").rstrip("\n"), count))
        with self._lock:
            self._lines.extend(replies)

    def read_line_until(self, delimiter: str) -> Optional[str]:
        with self._lock:
            self.reads += 1
            if self._lines:
                return self._lines.popleft()
        return None

    def feed(self, *lines: str) -> None:
        with self._lock:
            self._lines.extend(lines)

    def close(self) -> None:
        self.closed = True

    @property
    def payloads(self) -> list[str]:
        return [data.decode("ascii").rstrip("\n") for data in self.written]


@pytest.fixture
def firmware() -> FakeFirmware:
    return FakeFirmware()


@pytest.fixture
def signals() -> ControlSignals:
    sig = ControlSignals()
    sig.set_connected(True)
    return sig


@pytest.fixture
def fast_config() -> SessionConfig:
    return SessionConfig(
        ack_timeout=1.0,
        pause_poll_interval=0.005,
        idle_poll_interval=0.005,
        test_line_delay=0.001,
    )


@pytest.fixture
def sim_config() -> SessionConfig:
    return SessionConfig(
        test_mode=True,
        pause_poll_interval=0.005,
        idle_poll_interval=0.005,
        test_line_delay=0.001,
    )


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()
