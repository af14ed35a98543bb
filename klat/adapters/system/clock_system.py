from klat.ports.clock import Clock
from datetime import datetime, timezone

class SystemClock(Clock):
    """Zegar systemowy. Zawsze UTC; przeliczenie na strefę użytkownika robi ranking i CLI."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
