"""Manually advanced clock for TTL and circuit-breaker tests."""


class FakeClock:
    """Callable clock; time moves only when advance() is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
