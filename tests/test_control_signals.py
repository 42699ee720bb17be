"""Tests for the shared control flags."""

from __future__ import annotations

import threading

from print_sender.control_signals import ControlSignals
from print_sender.types import ControlState


def test_initial_state_is_all_false() -> None:
    assert ControlSignals().snapshot() == ControlState()


def test_stop_clears_pending_pause() -> None:
    sig = ControlSignals()
    sig.request_pause()
    assert sig.is_pause_requested()

    sig.request_stop()

    assert sig.is_stop_requested()
    assert not sig.is_pause_requested()


def test_resume_clears_pause_only() -> None:
    sig = ControlSignals()
    sig.request_pause()
    sig.request_resume()
    assert not sig.is_pause_requested()
    assert not sig.is_stop_requested()


def test_submit_requires_connection_outside_test_mode() -> None:
    sig = ControlSignals()
    assert not sig.submit_job(["G28"])
    assert not sig.is_job_requested()

    sig.set_connected(True)
    assert sig.submit_job(["G28"])
    assert sig.is_job_requested()


def test_submit_allowed_in_test_mode_without_connection() -> None:
    sig = ControlSignals(test_mode=True)
    assert sig.submit_job(["G28"])


def test_take_job_request_marks_running_atomically(signals: ControlSignals) -> None:
    assert signals.take_job_request() is None

    signals.submit_job(["G28", "G1 X1"])
    sequence = signals.take_job_request()

    assert sequence == ("G28", "G1 X1")
    assert signals.is_job_running()
    assert not signals.is_job_requested()
    assert signals.take_job_request() is None


def test_submit_rejected_while_running_leaves_job_untouched(signals: ControlSignals) -> None:
    signals.submit_job(["G28"])
    running = signals.take_job_request()
    signals.request_pause()

    assert not signals.submit_job(["M84"])

    assert running == ("G28",)
    assert not signals.is_job_requested()
    assert signals.is_pause_requested()
    assert signals.take_job_request() is None


def test_finish_job_allows_next_submission(signals: ControlSignals) -> None:
    signals.submit_job(["G28"])
    signals.take_job_request()
    signals.request_stop()

    signals.finish_job()

    assert not signals.is_job_running()
    assert not signals.is_stop_requested()
    assert signals.submit_job(["M84"])


def test_submit_clears_stale_stop_and_pause(signals: ControlSignals) -> None:
    signals.request_stop()
    signals.request_pause()
    assert signals.submit_job(["G28"])
    assert not signals.is_stop_requested()
    assert not signals.is_pause_requested()


def test_pending_request_is_replaced_by_next_submission(signals: ControlSignals) -> None:
    signals.submit_job(["G28"])
    signals.submit_job(["M84"])
    assert signals.take_job_request() == ("M84",)


def test_discard_job_request_drops_pending_sequence(signals: ControlSignals) -> None:
    signals.submit_job(["G28", "G1 X10"])

    assert signals.discard_job_request()

    assert not signals.is_job_requested()
    assert signals.take_job_request() is None
    assert not signals.is_job_running()
    assert not signals.discard_job_request()


def test_concurrent_submissions_start_at_most_one_job(signals: ControlSignals) -> None:
    signals.submit_job(["G28"])
    signals.take_job_request()
    results: list[bool] = []

    def submit() -> None:
        results.append(signals.submit_job(["G1"]))

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [False] * 8
