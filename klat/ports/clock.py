from typing import Protocol
from datetime import datetime

class Clock(Protocol):
    """Źródło „teraz” dla serwisów: znaczniki created_at/updated_at/completed_at
    oraz punkt odniesienia rankingu (dzisiejszy dzień liczony w strefie użytkownika).
    Zwraca czas aware w UTC."""
    def now(self) -> datetime:
        ...
