from typing import NewType
from datetime import date, datetime
from dataclasses import dataclass, field
from klat.domain.enums import Importance, NoteStatus

NoteId = NewType("NoteId", str)

@dataclass(frozen=True)
class Note():
    """
    Model domenowy pojedynczej notatki dziennika; niemutowalny.
    `created_at` nadawany raz przez serwis (port Clock) i nigdy nie zmieniany.
    `deadline`, `importance` i `created_at` czyta ranking (domain/priority.py),
    pozostałe pola są dla niego nieprzezroczyste.
    """
    note_id: NoteId
    date: date
    created_at: datetime
    content: str = ""
    updated_at: datetime | None = None
    deadline: datetime | None = None
    importance: Importance | None = None
    completed_at: datetime | None = None
    in_progress: bool = False
    tag_ids: tuple[str, ...] = ()
    images: tuple[str, ...] = field(default=())

    @property
    def status(self) -> NoteStatus:
        if self.completed_at is not None:
            return NoteStatus.DONE
        if self.in_progress:
            return NoteStatus.IN_PROGRESS
        return NoteStatus.TODO


@dataclass(frozen=True)
class CalendarDay():
    """Jeden dzień w widoku miesiąca."""
    date: date
    has_note: bool
    tag_ids: tuple[str, ...] = ()
