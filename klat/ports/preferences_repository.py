from typing import Protocol, Optional
from klat.domain.tag import Preferences


class PreferencesRepository(Protocol):
    """Przechowuje preferencje użytkownika (jeden rekord na dziennik)."""

    def load(self) -> Optional[Preferences]:
        """Zwraca zapisane preferencje albo `None`, jeśli nigdy ich nie zapisano."""

    def save(self, prefs: Preferences) -> None:
        """Upsert — zapisuje kompletny obiekt."""
