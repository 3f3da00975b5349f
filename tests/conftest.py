from __future__ import annotations

import pytest

from expiremap.expiring_map import ExpiringMap


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, millis: float) -> None:
        self.now += millis / 1000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock):
    expiring_map = ExpiringMap(clock=clock, start_reclaimer=False)
    yield expiring_map
    expiring_map.close()
