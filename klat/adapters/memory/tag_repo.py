from klat.domain.tag import Tag, TagId, Preferences
from klat.domain.errors import TagAlreadyExistsError, TagNotFoundError
from typing import Iterable, Optional


class InMemoryTagRepository:
    """Repozytorium tagów w pamięci (testy, tryb bez bazy)."""

    def __init__(self, initial: Iterable[Tag] | None = None) -> None:
        self._data: dict[TagId, Tag] = {}
        for t in (initial or []):
            self._data[t.tag_id] = t

    def add(self, tag: Tag) -> None:
        if tag.tag_id in self._data or self.get_by_name(tag.name) is not None:
            raise TagAlreadyExistsError(tag.name)
        self._data[tag.tag_id] = tag

    def get(self, tag_id: TagId) -> Optional[Tag]:
        return self._data.get(tag_id)

    def get_by_name(self, name: str) -> Optional[Tag]:
        for tag in self._data.values():
            if tag.name == name:
                return tag
        return None

    def update(self, tag: Tag) -> None:
        if tag.tag_id not in self._data:
            raise TagNotFoundError(tag.tag_id)
        self._data[tag.tag_id] = tag

    def remove(self, tag_id: TagId) -> None:
        if tag_id not in self._data:
            raise TagNotFoundError(tag_id)
        del self._data[tag_id]

    def list_all(self) -> list[Tag]:
        return sorted(self._data.values(), key=lambda t: (t.name, t.tag_id))


class InMemoryPreferencesRepository:
    def __init__(self, initial: Preferences | None = None) -> None:
        self._prefs = initial

    def load(self) -> Optional[Preferences]:
        return self._prefs

    def save(self, prefs: Preferences) -> None:
        self._prefs = prefs
