from klat.ports.preferences_repository import PreferencesRepository
from klat.ports.clock import Clock
from klat.domain.tag import Preferences


class PreferencesService:
    """Preferencje użytkownika; brak zapisu to wartości domyślne, nie błąd."""

    def __init__(self, repo: PreferencesRepository, clock: Clock) -> None:
        self.repo = repo
        self.clock = clock

    def get(self) -> Preferences:
        return self.repo.load() or Preferences()

    def update(self, email_notifications: bool | None = None) -> Preferences:
        """Upsert: niepodane pola zostają jak były (albo domyślne)."""
        current = self.get()
        prefs = Preferences(
            email_notifications=current.email_notifications if email_notifications is None else bool(email_notifications),
            updated_at=self.clock.now(),
        )
        self.repo.save(prefs)
        return prefs
