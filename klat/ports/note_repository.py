from typing import Protocol, Optional
from datetime import date
from klat.domain.note import Note, NoteId


### COMMENTS
# ==========================================================
# Kontrakt repozytorium notatek (ports/note_repository.py).
# ==========================================================
# - Niezależny od technologii (pamięć, SQLite przez SQLAlchemy).
# - Adaptery mapują błędy technologiczne na błędy domenowe
#   (UNIQUE → NoteAlreadyExistsError, brak rekordu → NoteNotFoundError).
# - Repozytorium nie zawiera logiki biznesowej ani rankingu.
# - Listowanie zwraca stabilną kolejność: created_at ASC, tiebreaker note_id ASC.
#   Kolejność prezentacji ustala dopiero serwis (domain/priority.rank_notes).


class NoteRepository(Protocol):
    """Interfejs repozytorium do zapisu i odczytu obiektów `Note`."""

    def add(self, note: Note) -> None:
        """Dodaje nowy rekord `Note`.

        Wyjątki domenowe:
            NoteAlreadyExistsError: Gdy istnieje wpis o tym samym `note_id`.
        """

    def get(self, note_id: NoteId) -> Optional[Note]:
        """Zwraca notatkę o podanym `note_id` albo `None`."""

    def update(self, note: Note) -> None:
        """Pełna podmiana istniejącego rekordu (razem z tagami i obrazami).

        Wyjątki domenowe:
            NoteNotFoundError: Gdy rekord z `note_id` nie istnieje.
        """

    def remove(self, note_id: NoteId) -> None:
        """Usuwa (hard delete) rekord wraz z powiązaniami do tagów.

        Wyjątki domenowe:
            NoteNotFoundError: Gdy rekord z `note_id` nie istnieje.
        """

    def exists(self, note_id: NoteId) -> bool:
        """Szybkie sprawdzenie istnienia rekordu."""

    def list_all(self) -> list[Note]:
        """Wszystkie notatki (created_at ASC, note_id ASC)."""

    def list_between(self, start: date, end: date) -> list[Note]:
        """Notatki, których `date` mieści się w [start, end] (obustronnie domknięty)."""

    def count_all(self) -> int:
        """Całkowita liczba notatek."""

    def count_with_tag(self, tag_id: str) -> int:
        """Liczba notatek oznaczonych tagiem `tag_id`."""
