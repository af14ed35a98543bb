from typing import Protocol, Optional
from klat.domain.tag import Tag, TagId


class TagRepository(Protocol):
    """Interfejs repozytorium tagów.

    Adaptery (implementacje) muszą:
    - mapować błędy technologiczne na błędy domenowe,
    - zwracać listę posortowaną po nazwie (tiebreaker `tag_id`),
    - nie wykonywać walidacji nazwy/koloru (to zadanie `TagService`).
    """

    def add(self, tag: Tag) -> None:
        """Dodaje tag. `TagAlreadyExistsError` przy kolizji ID lub nazwy."""

    def get(self, tag_id: TagId) -> Optional[Tag]:
        """Zwraca tag albo `None`."""

    def get_by_name(self, name: str) -> Optional[Tag]:
        """Wyszukuje tag po dokładnej nazwie."""

    def update(self, tag: Tag) -> None:
        """Pełna podmiana rekordu. `TagNotFoundError`, gdy nie istnieje."""

    def remove(self, tag_id: TagId) -> None:
        """Usuwa tag. `TagNotFoundError`, gdy nie istnieje."""

    def list_all(self) -> list[Tag]:
        """Wszystkie tagi, rosnąco po nazwie."""
