from __future__ import annotations

import threading
import time
from collections import Counter

from wind_farm_yield.services.scheduler import RecalcScheduler


class Recorder:
    def __init__(self, fail_for=()):
        self.calls = Counter()
        self.fail_for = set(fail_for)
        self.fired = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, scenario_id):
        with self._lock:
            self.calls[scenario_id] += 1
        self.fired.set()
        if scenario_id in self.fail_for:
            raise RuntimeError(f"boom for {scenario_id}")


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_burst_of_signals_runs_once():
    recorder = Recorder()
    scheduler = RecalcScheduler(recorder, delay_seconds=0.2)
    try:
        for _ in range(5):
            scheduler.signal("s1")
        assert recorder.calls["s1"] == 0
        assert scheduler.pending() == ["s1"]
        assert recorder.fired.wait(2.0)
        time.sleep(0.2)
        assert recorder.calls["s1"] == 1
        assert scheduler.pending() == []
    finally:
        scheduler.shutdown()


def test_scenarios_are_debounced_independently():
    recorder = Recorder()
    scheduler = RecalcScheduler(recorder, delay_seconds=0.05)
    try:
        scheduler.signal("s1")
        scheduler.signal("s2")
        scheduler.signal("s1")
        assert _wait_for(lambda: recorder.calls["s1"] == 1 and recorder.calls["s2"] == 1)
        time.sleep(0.1)
        assert recorder.calls == Counter({"s1": 1, "s2": 1})
    finally:
        scheduler.shutdown()


def test_failures_are_isolated():
    recorder = Recorder(fail_for={"bad"})
    errors = []
    scheduler = RecalcScheduler(recorder, delay_seconds=0.02, on_error=lambda sid, exc: errors.append(sid))
    try:
        scheduler.signal("bad")
        assert _wait_for(lambda: errors == ["bad"])

        scheduler.signal("good")
        scheduler.signal("bad")
        assert _wait_for(lambda: recorder.calls["good"] == 1 and recorder.calls["bad"] == 2)
        assert _wait_for(lambda: errors == ["bad", "bad"])
    finally:
        scheduler.shutdown()


def test_shutdown_cancels_pending():
    recorder = Recorder()
    scheduler = RecalcScheduler(recorder, delay_seconds=0.2)
    scheduler.signal("s1")
    assert scheduler.pending() == ["s1"]

    scheduler.shutdown()
    time.sleep(0.3)
    assert recorder.calls["s1"] == 0

    scheduler.signal("s1")
    assert scheduler.pending() == []


def test_shutdown_can_run_pending_now():
    recorder = Recorder()
    scheduler = RecalcScheduler(recorder, delay_seconds=10.0)
    scheduler.signal("s1")
    scheduler.signal("s2")

    scheduler.shutdown(run_pending=True)
    assert recorder.calls == Counter({"s1": 1, "s2": 1})
