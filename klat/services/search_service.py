import re
import logging
from dataclasses import dataclass
from datetime import date
from klat.ports.note_repository import NoteRepository
from klat.ports.tag_repository import TagRepository
from klat.domain.note import Note

logger = logging.getLogger(__name__)

SNIPPET_CONTEXT = 100


@dataclass(frozen=True)
class SearchResult:
    note: Note
    snippet: str
    highlights: list[str]


def create_snippet(content: str, query: str, context: int = SNIPPET_CONTEXT) -> str:
    """Fragment treści wokół pierwszego trafienia; bez trafienia — początek treści."""
    index = content.lower().find(query.lower()) if query else -1
    if index == -1:
        return content[:context] + ("..." if len(content) > context else "")

    start = max(0, index - context // 2)
    end = min(len(content), index + len(query) + context // 2)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def find_highlights(content: str, query: str) -> list[str]:
    """Unikalne słowa z treści zaczynające się od któregoś ze słów zapytania."""
    highlights: dict[str, None] = {}
    for term in query.split():
        for match in re.findall(rf"\b{re.escape(term)}\w*", content, flags=re.IGNORECASE):
            highlights[match] = None
    return list(highlights)


class SearchService:
    """
    Wyszukiwanie pełnotekstowe po treści notatek i nazwach tagów.

    :param notes: Repozytorium notatek.
    :param tags: Repozytorium tagów (dopasowanie zapytania do nazw tagów).
    """
    def __init__(self, notes: NoteRepository, tags: TagRepository) -> None:
        self.notes = notes
        self.tags = tags

    def search(
        self,
        query: str = "",
        tag_ids=(),
        start: date | None = None,
        end: date | None = None,
    ) -> list[SearchResult]:
        """
            Zwraca wyniki posortowane malejąco po dniu notatki.

            - Brak zapytania i brak tagów → pusta lista.
            - Zapytanie pasuje do treści (bez rozróżniania wielkości liter) LUB do nazwy tagu.
            - Filtr tagów: notatka ma przynajmniej jeden z podanych tagów.
            - `start` / `end` ograniczają `note.date` obustronnie włącznie.
        """
        query = (query or "").strip()
        wanted = set(tag_ids or ())
        if not query and not wanted:
            logger.debug("Empty search, nothing to do")
            return []

        if start is not None or end is not None:
            candidates = self.notes.list_between(start or date.min, end or date.max)
        else:
            candidates = self.notes.list_all()

        names = {t.tag_id: t.name.lower() for t in self.tags.list_all()}
        needle = query.lower()

        def matches(note: Note) -> bool:
            if wanted and not wanted.intersection(note.tag_ids):
                return False
            if not needle:
                return True
            if needle in note.content.lower():
                return True
            return any(needle in names.get(t, "") for t in note.tag_ids)

        found = sorted((n for n in candidates if matches(n)), key=lambda n: n.date, reverse=True)
        logger.debug("Search %r matched %d of %d notes", query, len(found), len(candidates))
        return [
            SearchResult(note=n, snippet=create_snippet(n.content, query), highlights=find_highlights(n.content, query))
            for n in found
        ]
