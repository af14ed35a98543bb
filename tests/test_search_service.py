import pytest
from datetime import date, datetime, timezone, timedelta
from klat.adapters.memory.note_repo import InMemoryNoteRepository
from klat.adapters.memory.tag_repo import InMemoryTagRepository
from klat.services.search_service import SearchService, create_snippet, find_highlights
from klat.domain.note import Note, NoteId
from klat.domain.tag import Tag, TagId

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def search():
    tags = InMemoryTagRepository([
        Tag(tag_id=TagId("t-work"), name="Praca", created_at=T0),
        Tag(tag_id=TagId("t-home"), name="dom", created_at=T0),
    ])
    notes = InMemoryNoteRepository([
        Note(note_id=NoteId("a"), date=date(2025, 1, 5), created_at=T0,
             content="Spotkanie z zespołem o budżecie", tag_ids=("t-work",)),
        Note(note_id=NoteId("b"), date=date(2025, 2, 10), created_at=T0 + timedelta(minutes=1),
             content="Zakupy: mleko, chleb", tag_ids=("t-home",)),
        Note(note_id=NoteId("c"), date=date(2025, 3, 1), created_at=T0 + timedelta(minutes=2),
             content="Spotkania przeniesione na czwartek"),
    ])
    return SearchService(notes, tags)


def ids(results) -> list[str]:
    return [r.note.note_id for r in results]


def test_empty_search_returns_nothing(search):
    assert search.search() == []
    assert search.search("   ") == []


def test_content_match_is_case_insensitive_and_newest_first(search):
    assert ids(search.search("SPOTKANI")) == ["c", "a"]


def test_query_matches_tag_names(search):
    assert ids(search.search("praca")) == ["a"]


def test_tag_filter_any_of(search):
    assert ids(search.search(tag_ids=["t-home"])) == ["b"]
    assert ids(search.search(tag_ids=["t-home", "t-work"])) == ["b", "a"]
    assert ids(search.search("spotkanie", tag_ids=["t-home"])) == []


def test_date_range_is_inclusive(search):
    assert ids(search.search("spotkani", start=date(2025, 1, 5), end=date(2025, 2, 28))) == ["a"]
    assert ids(search.search("spotkani", start=date(2025, 2, 1))) == ["c"]
    assert ids(search.search("spotkani", end=date(2025, 3, 1))) == ["c", "a"]


def test_results_carry_snippet_and_highlights(search):
    [result] = search.search("mleko")
    assert result.snippet == "Zakupy: mleko, chleb"
    assert result.highlights == ["mleko"]


def test_snippet_is_trimmed_around_match():
    content = "a" * 200 + " igła " + "b" * 200
    snippet = create_snippet(content, "igła")

    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "igła" in snippet
    assert len(snippet) <= 100 + len("igła") + 6


def test_snippet_without_match_is_beginning():
    assert create_snippet("krótka notatka", "xyz") == "krótka notatka"
    assert create_snippet("x" * 150, "") == "x" * 100 + "..."


def test_highlights_are_unique_word_prefixes():
    content = "Spotkanie, spotkania i jeszcze raz Spotkanie"
    assert find_highlights(content, "spotk") == ["Spotkanie", "spotkania"]
    assert find_highlights(content, "raz jeszcze") == ["raz", "jeszcze"]
    assert find_highlights(content, "(") == []
