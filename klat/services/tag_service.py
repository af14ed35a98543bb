import re
import logging
from dataclasses import dataclass, replace
from klat.ports.tag_repository import TagRepository
from klat.ports.note_repository import NoteRepository
from klat.ports.id_provider import IdProvider
from klat.ports.clock import Clock
from klat.domain.tag import Tag, TagId
from klat.domain.errors import TagValidationError, TagNotFoundError, TagAlreadyExistsError, TagInUseError

logger = logging.getLogger(__name__)

COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
MAX_NAME_LENGTH = 50


@dataclass(frozen=True)
class TagUsage:
    tag: Tag
    note_count: int


class TagService:
    """
    Serwis przypadków użycia dla tagów.

    :param repo: Implementacja portu TagRepository.
    :param notes: Repozytorium notatek — liczniki użycia i blokada usuwania.
    """
    def __init__(self, repo: TagRepository, notes: NoteRepository, id_provider: IdProvider, clock: Clock) -> None:
        self.repo = repo
        self.notes = notes
        self.id_provider = id_provider
        self.clock = clock

    def _validate_name(self, name) -> str:
        if not isinstance(name, str) or not name.strip():
            raise TagValidationError("name", "Nazwa tagu nie moze byc pusta")
        name = name.strip()
        if len(name) > MAX_NAME_LENGTH:
            raise TagValidationError("name", f"Maksymalnie {MAX_NAME_LENGTH} znaków")
        return name

    def _validate_color(self, color) -> str | None:
        if color is None:
            return None
        if not isinstance(color, str) or not COLOR_RE.match(color):
            raise TagValidationError("color", "Kolor musi być w formacie #RRGGBB")
        return color

    def list_tags(self) -> list[TagUsage]:
        """Wszystkie tagi (rosnąco po nazwie) z liczbą notatek."""
        return [TagUsage(t, self.notes.count_with_tag(t.tag_id)) for t in self.repo.list_all()]

    def get_tag(self, tag_id: TagId) -> Tag:
        tag = self.repo.get(tag_id)
        if tag is None:
            raise TagNotFoundError(tag_id)
        return tag

    def create_tag(self, name: str, color: str | None = None) -> Tag:
        """
            Tworzy tag.

            :raises TagValidationError: Pusta / za długa nazwa albo zły kolor.
            :raises TagAlreadyExistsError: Tag o tej nazwie już istnieje.
        """
        name = self._validate_name(name)
        color = self._validate_color(color)
        if self.repo.get_by_name(name) is not None:
            raise TagAlreadyExistsError(name)

        tag = Tag(tag_id=TagId(self.id_provider.new_id()), name=name, color=color, created_at=self.clock.now())
        self.repo.add(tag)
        logger.info("Created tag %s (%s)", tag.tag_id, tag.name)
        return tag

    def update_tag(self, tag_id: TagId, name: str | None = None, color: str | None = None) -> Tag:
        """
            Zmienia nazwę i/lub kolor tagu; pola `None` pozostają bez zmian.

            :raises TagNotFoundError: Gdy tag nie istnieje.
            :raises TagAlreadyExistsError: Gdy nowa nazwa jest zajęta przez inny tag.
        """
        tag = self.get_tag(tag_id)
        changes = {}
        if name is not None:
            name = self._validate_name(name)
            if name != tag.name:
                other = self.repo.get_by_name(name)
                if other is not None and other.tag_id != tag.tag_id:
                    raise TagAlreadyExistsError(name)
            changes["name"] = name
        if color is not None:
            changes["color"] = self._validate_color(color)
        if not changes:
            return tag

        updated = replace(tag, **changes)
        self.repo.update(updated)
        return updated

    def delete_tag(self, tag_id: TagId) -> None:
        """
            Usuwa tag, o ile nie używa go żadna notatka.

            :raises TagNotFoundError: Gdy tag nie istnieje.
            :raises TagInUseError: Gdy tag jest przypięty do notatek.
        """
        self.get_tag(tag_id)
        count = self.notes.count_with_tag(tag_id)
        if count > 0:
            raise TagInUseError(tag_id, count)
        self.repo.remove(tag_id)
        logger.info("Deleted tag %s", tag_id)

    def resolve_names(self, names) -> list[TagId]:
        """Zamienia nazwy tagów (np. z CLI) na identyfikatory.

        :raises TagNotFoundError: Gdy któraś nazwa nie istnieje.
        """
        ids = []
        for name in names:
            tag = self.repo.get_by_name(name.strip())
            if tag is None:
                raise TagNotFoundError(name)
            ids.append(tag.tag_id)
        return ids
