from __future__ import annotations

import gc
import logging
import threading
import time

import pytest

from expiremap.expiring_map import ExpiringMap
from expiremap.reclaimer import Reclaimer


def _wait_for(predicate, timeout: float = 3.0) -> bool:  # type: ignore[no-untyped-def]
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_unread_entries_are_reclaimed_in_background() -> None:
    with ExpiringMap(sweep_period=0.05) as expiring_map:
        expiring_map.put("short", "v", 20)
        expiring_map.put("long", "v", 60_000)

        assert expiring_map.reclaimer.is_running
        assert _wait_for(lambda: len(expiring_map) == 1)
        assert expiring_map.get("long") == "v"


def test_default_period_reclaims_after_ttl_plus_one_second() -> None:
    with ExpiringMap() as expiring_map:
        expiring_map.put("k", "v", 100)

        time.sleep(1.3)

        assert _wait_for(lambda: len(expiring_map) == 0, timeout=1.0)


def test_close_stops_background_thread_but_map_stays_usable() -> None:
    expiring_map = ExpiringMap(sweep_period=0.05)
    expiring_map.close()

    assert not expiring_map.reclaimer.is_running

    expiring_map.put("k", "v", 10)
    time.sleep(0.15)
    assert len(expiring_map) == 1
    assert expiring_map.get("k") is None


def test_map_without_reclaimer_does_not_start_thread() -> None:
    expiring_map = ExpiringMap(start_reclaimer=False)

    assert not expiring_map.reclaimer.is_running


def test_reclaimer_exits_once_map_is_collected() -> None:
    expiring_map = ExpiringMap(sweep_period=0.02)
    reclaimer = expiring_map.reclaimer
    del expiring_map
    gc.collect()

    assert _wait_for(lambda: not reclaimer.is_running)


class FlakyTarget:
    def __init__(self) -> None:
        self.calls = 0

    def sweep(self) -> int:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("boom")
        return 1


def test_sweep_failure_is_logged_and_loop_continues(caplog: pytest.LogCaptureFixture) -> None:
    target = FlakyTarget()
    reclaimer = Reclaimer(target, 0.02)

    with caplog.at_level(logging.ERROR, logger="expiremap"):
        reclaimer.start()
        try:
            assert _wait_for(lambda: target.calls >= 3)
        finally:
            reclaimer.stop()

    assert "Sweep failed" in caplog.text
    assert not reclaimer.is_running


def test_start_is_idempotent_and_restartable() -> None:
    target = FlakyTarget()
    target.calls = 1
    reclaimer = Reclaimer(target, 0.02)

    reclaimer.start()
    first_thread = reclaimer._thread
    reclaimer.start()
    assert reclaimer._thread is first_thread

    reclaimer.stop()
    reclaimer.start()
    try:
        assert reclaimer.is_running
    finally:
        reclaimer.stop()


def test_rejects_non_positive_period() -> None:
    with pytest.raises(ValueError):
        Reclaimer(FlakyTarget(), 0)


class BlockingTarget:
    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def sweep(self) -> int:
        self.calls += 1
        self.entered.set()
        self.release.wait(5.0)
        return 0


def test_restart_after_timed_out_stop_keeps_a_single_thread() -> None:
    target = BlockingTarget()
    reclaimer = Reclaimer(target, 0.01)

    reclaimer.start()
    assert target.entered.wait(3.0)
    old_thread = reclaimer._thread

    reclaimer.stop(timeout=0.01)
    assert old_thread is not None and old_thread.is_alive()
    assert not reclaimer.is_running

    target.release.set()
    reclaimer.start()
    try:
        assert not old_thread.is_alive()
        assert reclaimer._thread is not old_thread
        assert reclaimer.is_running
        new_thread = reclaimer._thread
    finally:
        reclaimer.stop()

    assert not reclaimer.is_running
    assert new_thread is not None and not new_thread.is_alive()
