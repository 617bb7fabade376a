from datetime import datetime, timedelta


class FixedClock:
    """Clock frozen at a given local time; advance() moves it forward."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)
