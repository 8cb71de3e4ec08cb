"""Time sources. Pools read time only through a zero-argument callable."""

import time


def wall_clock() -> int:
    return int(time.time())


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now
