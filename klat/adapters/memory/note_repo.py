from klat.domain.note import Note, NoteId
from klat.domain.errors import NoteAlreadyExistsError, NoteNotFoundError
from typing import Iterable, Optional
from datetime import date

### COMMENTS
# ==========================================================
# Adapter pamięciowy dla repozytorium notatek (adapters/memory/note_repo.py).
# ==========================================================
# - Służy do testów i trybu bez bazy (`klat` bez --db).
# - Dane przechowywane są w słowniku `_data: dict[NoteId, Note]`.
# - Zasady zgodne z kontraktem portu:
#     * `add`    → `NoteAlreadyExistsError`, jeśli ID istnieje,
#     * `update` → `NoteNotFoundError`, jeśli ID nie istnieje,
#     * `remove` → usuwa lub zgłasza `NoteNotFoundError`,
#     * listy → created_at ASC + tiebreaker po `note_id`.


class InMemoryNoteRepository:
    """
        Repozytorium notatek w pamięci z opcjonalnym zestawem startowym.
        :param initial: Iterable z obiektami Note do wstępnego załadowania
        (przy duplikatach ostatni wygrywa — to tylko seed, nie API).
    """
    def __init__(self, initial: Iterable[Note] | None = None) -> None:
        self._data: dict[NoteId, Note] = {}
        for n in (initial or []):
            self._data[n.note_id] = n

    def add(self, note: Note) -> None:
        if note.note_id in self._data:
            raise NoteAlreadyExistsError(note.note_id)
        self._data[note.note_id] = note

    def get(self, note_id: NoteId) -> Optional[Note]:
        return self._data.get(note_id)

    def update(self, note: Note) -> None:
        """
            Pełna podmiana istniejącego rekordu o danym `note_id`.

            :raises NoteNotFoundError: Gdy rekord z `note_id` nie istnieje.
        """
        if note.note_id not in self._data:
            raise NoteNotFoundError(note.note_id)
        self._data[note.note_id] = note

    def remove(self, note_id: NoteId) -> None:
        if note_id not in self._data:
            raise NoteNotFoundError(note_id)
        del self._data[note_id]

    def exists(self, note_id: NoteId) -> bool:
        return note_id in self._data

    def _sorted(self, notes: Iterable[Note]) -> list[Note]:
        return sorted(notes, key=lambda n: (n.created_at, n.note_id))

    def list_all(self) -> list[Note]:
        return self._sorted(self._data.values())

    def list_between(self, start: date, end: date) -> list[Note]:
        """Notatki z `date` w przedziale [start, end]."""
        return self._sorted(n for n in self._data.values() if start <= n.date <= end)

    def count_all(self) -> int:
        return len(self._data)

    def count_with_tag(self, tag_id: str) -> int:
        return sum(1 for n in self._data.values() if tag_id in n.tag_ids)
