import calendar
from dataclasses import replace
import logging
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any
from klat.ports.note_repository import NoteRepository
from klat.ports.tag_repository import TagRepository
from klat.ports.id_provider import IdProvider
from klat.ports.clock import Clock
from klat.services.image_service import ImageService
from klat.domain.note import Note, NoteId, CalendarDay
from klat.domain.enums import Importance, NoteStatus
from klat.domain.errors import NoteValidationError, NoteNotFoundError, TagNotFoundError
from klat.domain.priority import rank_notes, RankingPolicy, DEFAULT_POLICY


### COMMENTS
# ==========================================================
# Warstwa serwisowa (services/note_service.py) — przypadki użycia notatek.
# ==========================================================
# Rola:
# - Orkiestracja logiki aplikacyjnej nad portami `NoteRepository` i `TagRepository`.
# - Walidacje danych wejściowych (dzień, miesiąc, waga, istnienie tagów).
# - KAŻDA lista notatek wychodząca z serwisu jest posortowana przez `rank_notes`
#   względem `clock.now()` w strefie użytkownika.
#
# Zasady:
# - Serwis korzysta wyłącznie z portów; nie dotyka adapterów.
# - Modele domenowe są niemutowalne (`frozen=True`) — zmiana = nowa instancja i `repo.update`.
# - `created_at` nadawany raz przy tworzeniu, `updated_at` odświeżany przy każdej zmianie.

logger = logging.getLogger(__name__)

UNSET: Any = object()


def coerce_importance(value: Any) -> Importance | None:
    """'high' / 'HIGH' / Importance.HIGH → Importance.HIGH; None lub '' → None."""
    if value is None or value == "":
        return None
    try:
        return Importance(str(value).upper())
    except ValueError:
        raise NoteValidationError("importance", "Dozwolone wartości: LOW, MEDIUM, HIGH")


class NoteService:
    """
    Serwis przypadków użycia dla notatek dziennika.

    :param repo: Implementacja portu NoteRepository.
    :param tags: Implementacja portu TagRepository (walidacja `tag_ids`).
    :param id_provider: Źródło identyfikatorów.
    :param clock: Źródło czasu (UTC).
    :param images: Serwis obrazów; przy usuwaniu notatki sprzątane są jej załączniki.
    :param tz: Strefa użytkownika — wyznacza "dziś" dla rankingu.
    :param policy: Fallback rankingu dla nieczytelnych dat.
    """
    def __init__(
        self,
        repo: NoteRepository,
        tags: TagRepository,
        id_provider: IdProvider,
        clock: Clock,
        images: ImageService | None = None,
        tz: tzinfo | None = None,
        policy: RankingPolicy = DEFAULT_POLICY,
    ) -> None:
        self.repo = repo
        self.tags = tags
        self.id_provider = id_provider
        self.clock = clock
        self.images = images
        self.tz = tz
        self.policy = policy

    # --- pomocnicze ---------------------------------------------------------

    def rank(self, notes: list[Note]) -> list[Note]:
        return rank_notes(notes, self.clock.now(), tz=self.tz, policy=self.policy)

    def _aware(self, value: datetime | date | None, field: str) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=self.tz or timezone.utc)
            return value
        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=self.tz or timezone.utc)
        raise NoteValidationError(field, "Oczekiwano daty lub daty z godziną")

    def _check_tags(self, tag_ids) -> tuple[str, ...]:
        unique = tuple(dict.fromkeys(str(t) for t in tag_ids))
        for tag_id in unique:
            if self.tags.get(tag_id) is None:
                raise TagNotFoundError(tag_id)
        return unique

    @staticmethod
    def _day(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value[:10])
            except ValueError:
                pass
        raise NoteValidationError("date", "Dzień musi mieć format YYYY-MM-DD")

    @staticmethod
    def month_range(year: int, month: int) -> tuple[date, date]:
        if not 1 <= month <= 12:
            raise NoteValidationError("month", "Miesiąc musi być z zakresu 1-12")
        last = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last)

    # --- przypadki użycia ---------------------------------------------------

    def create_note(
        self,
        day,
        content: str = "",
        deadline=None,
        importance=None,
        tag_ids=(),
        completed_at=None,
    ) -> Note:
        """
            Tworzy nową notatkę (wiele notatek na dzień jest dozwolone).

            - `note_id` z `IdProvider`, `created_at = updated_at = clock.now()`.
            - `tag_ids` deduplikowane; każdy tag musi istnieć (`TagNotFoundError`).
            - Naiwne daty dostają strefę użytkownika.

            :raises NoteValidationError: Gdy dzień, treść lub waga są niepoprawne.
            :return: Utworzony obiekt `Note`.
        """
        if not isinstance(content, str):
            raise NoteValidationError("content", "Treść musi być tekstem")

        now = self.clock.now()
        note = Note(
            note_id=NoteId(self.id_provider.new_id()),
            date=self._day(day),
            content=content,
            created_at=now,
            updated_at=now,
            deadline=self._aware(deadline, "deadline"),
            importance=coerce_importance(importance),
            completed_at=self._aware(completed_at, "completed_at"),
            tag_ids=self._check_tags(tag_ids),
        )
        self.repo.add(note)
        logger.info("Created note %s for %s", note.note_id, note.date)
        return note

    def get_note(self, note_id: NoteId) -> Note:
        """
            Zwraca pojedynczą notatkę.

            :raises NoteNotFoundError: Gdy nie znaleziono notatki.
        """
        note = self.repo.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    def notes_for_day(self, day) -> list[Note]:
        d = self._day(day)
        return self.rank(self.repo.list_between(d, d))

    def notes_for_month(self, year: int, month: int) -> list[Note]:
        start, end = self.month_range(year, month)
        return self.rank(self.repo.list_between(start, end))

    def all_notes(self) -> list[Note]:
        return self.rank(self.repo.list_all())

    def update_note(
        self,
        note_id: NoteId,
        *,
        content=UNSET,
        deadline=UNSET,
        importance=UNSET,
        completed_at=UNSET,
        in_progress=UNSET,
        tag_ids=UNSET,
    ) -> Note:
        """
            Częściowa aktualizacja notatki.

            - Zmieniane są tylko przekazane pola; `None` czyści pole opcjonalne.
            - `tag_ids` podmienia cały zestaw tagów.
            - `created_at` zostaje bez zmian, `updated_at = clock.now()`.

            :raises NoteNotFoundError: Gdy notatka nie istnieje.
            :raises TagNotFoundError: Gdy któryś z tagów nie istnieje.
        """
        note = self.get_note(note_id)
        changes: dict[str, Any] = {}

        if content is not UNSET:
            if not isinstance(content, str):
                raise NoteValidationError("content", "Treść musi być tekstem")
            changes["content"] = content
        if deadline is not UNSET:
            changes["deadline"] = self._aware(deadline, "deadline")
        if importance is not UNSET:
            changes["importance"] = coerce_importance(importance)
        if completed_at is not UNSET:
            changes["completed_at"] = self._aware(completed_at, "completed_at")
        if in_progress is not UNSET:
            changes["in_progress"] = bool(in_progress)
        if tag_ids is not UNSET:
            changes["tag_ids"] = self._check_tags(tag_ids or ())

        if not changes:
            return note

        updated = replace(note, **changes, updated_at=self.clock.now())
        self.repo.update(updated)
        return updated

    def set_status(self, note_id: NoteId, status: NoteStatus) -> Note:
        """
            Przenosi notatkę do kolumny tablicy kanban.

            - TODO: czyści `in_progress` i `completed_at`.
            - IN_PROGRESS: ustawia `in_progress`, czyści `completed_at`.
            - DONE: `completed_at = clock.now()`, czyści `in_progress`.
            Operacja jest idempotentna — notatka już w docelowej kolumnie wraca bez zmian.

            :raises NoteNotFoundError: Gdy notatka nie istnieje.
        """
        note = self.get_note(note_id)
        status = NoteStatus(status)
        if note.status == status:
            return note
        if status == NoteStatus.TODO:
            return self.update_note(note_id, in_progress=False, completed_at=None)
        if status == NoteStatus.IN_PROGRESS:
            return self.update_note(note_id, in_progress=True, completed_at=None)
        return self.update_note(note_id, in_progress=False, completed_at=self.clock.now())

    def board(self) -> dict[NoteStatus, list[Note]]:
        """Tablica kanban: każda kolumna osobno posortowana rankingiem."""
        columns: dict[NoteStatus, list[Note]] = {s: [] for s in NoteStatus}
        for note in self.repo.list_all():
            columns[note.status].append(note)
        return {status: self.rank(items) for status, items in columns.items()}

    def delete_note(self, note_id: NoteId) -> None:
        """
            Usuwa notatkę razem z jej obrazami.

            Błąd przy sprzątaniu obrazów jest logowany i nie przerywa usuwania notatki.

            :raises NoteNotFoundError: Gdy nie znaleziono notatki.
        """
        if not self.repo.exists(note_id):
            raise NoteNotFoundError(note_id)
        if self.images is not None:
            self.images.delete_note_images(note_id)
        self.repo.remove(note_id)
        logger.info("Deleted note %s", note_id)

    def delete_completed(self) -> int:
        """Usuwa wszystkie notatki z kolumny DONE. Zwraca ich liczbę."""
        done = [n for n in self.repo.list_all() if n.status == NoteStatus.DONE]
        for note in done:
            self.delete_note(note.note_id)
        return len(done)

    def calendar_month(self, year: int, month: int) -> list[CalendarDay]:
        """Każdy dzień miesiąca z informacją, czy ma notatki, i sumą ich tagów."""
        start, end = self.month_range(year, month)
        by_day: dict[date, list[Note]] = {}
        for note in self.repo.list_between(start, end):
            by_day.setdefault(note.date, []).append(note)

        days = []
        for day_no in range(1, end.day + 1):
            day = date(year, month, day_no)
            notes = by_day.get(day, [])
            tag_ids = tuple(dict.fromkeys(t for n in notes for t in n.tag_ids))
            days.append(CalendarDay(date=day, has_note=bool(notes), tag_ids=tag_ids))
        return days
