from datetime import datetime, timedelta, timezone

import pytest

from stopwatch import stopwatch as stopwatch_module


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch):
    """Pin the stopwatch wall clock so durations are exact."""
    fake = FakeClock()
    monkeypatch.setattr(stopwatch_module, "_now", fake)
    return fake
