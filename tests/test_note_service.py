from klat.adapters.memory.note_repo import InMemoryNoteRepository
from klat.adapters.memory.tag_repo import InMemoryTagRepository
from klat.adapters.storage.file_storage import InMemoryImageStorage
from klat.services.note_service import NoteService
from klat.services.image_service import ImageService
from klat.domain.tag import Tag, TagId
from klat.domain.enums import Importance, NoteStatus
from klat.domain.errors import NoteNotFoundError, NoteValidationError, TagNotFoundError
import pytest
from datetime import date, datetime, timezone, timedelta


class FakeIdProvider:
    def __init__(self):
        self.counter = 0
    def new_id(self) -> str:
        self.counter += 1
        return f"id-{self.counter}"

class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        # jeśli nie podamy fixed, zwróci zawsze ten sam „teraz”
        self.fixed = fixed or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    def now(self) -> datetime:
        return self.fixed
    def advance(self, **kwargs) -> None:
        self.fixed = self.fixed + timedelta(**kwargs)


TODAY = date(2025, 1, 1)


def make_service(clock=None, tags=(), images=None):
    tag_repo = InMemoryTagRepository(tags)
    return NoteService(
        InMemoryNoteRepository(), tag_repo, FakeIdProvider(), clock or FakeClock(),
        images=images, tz=timezone.utc,
    )


def test_create_note():
    service = make_service()

    note = service.create_note(TODAY, "Kup mleko")

    assert note.note_id == "id-1"
    assert note.content == "Kup mleko"
    assert note.status == NoteStatus.TODO
    assert service.all_notes() == [note]


def test_create_uses_clock_time():
    clock = FakeClock(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    service = make_service(clock)

    n = service.create_note("2025-01-02")
    assert n.created_at == clock.fixed
    assert n.updated_at == clock.fixed
    assert n.date == date(2025, 1, 2)


def test_create_rejects_bad_input():
    service = make_service()
    with pytest.raises(NoteValidationError):
        service.create_note("not-a-day")
    with pytest.raises(NoteValidationError):
        service.create_note(TODAY, importance="URGENT")
    with pytest.raises(NoteValidationError):
        service.create_note(TODAY, content=None)


def test_create_with_unknown_tag_raises():
    service = make_service()
    with pytest.raises(TagNotFoundError):
        service.create_note(TODAY, "x", tag_ids=["nope"])
    assert service.repo.count_all() == 0


def test_tag_ids_are_deduplicated():
    tag = Tag(tag_id=TagId("t1"), name="praca", created_at=FakeClock().now())
    service = make_service(tags=[tag])

    note = service.create_note(TODAY, "x", tag_ids=["t1", "t1"])
    assert note.tag_ids == ("t1",)


def test_naive_deadline_gets_user_zone():
    service = make_service()
    note = service.create_note(TODAY, deadline=datetime(2025, 1, 3, 9, 0))
    assert note.deadline == datetime(2025, 1, 3, 9, 0, tzinfo=timezone.utc)

    day_only = service.create_note(TODAY, deadline=date(2025, 1, 4))
    assert day_only.deadline == datetime(2025, 1, 4, tzinfo=timezone.utc)


def test_importance_is_case_insensitive():
    service = make_service()
    assert service.create_note(TODAY, importance="high").importance == Importance.HIGH


def test_listings_are_ranked():
    clock = FakeClock()
    service = make_service(clock)

    later = service.create_note(TODAY, "later", deadline=datetime(2025, 2, 1, tzinfo=timezone.utc))
    clock.advance(minutes=1)
    nothing = service.create_note(TODAY, "no deadline", importance=Importance.HIGH)
    clock.advance(minutes=1)
    overdue = service.create_note(TODAY, "overdue", deadline=datetime(2024, 12, 30, tzinfo=timezone.utc))
    clock.advance(minutes=1)
    soon = service.create_note(date(2025, 1, 2), "soon", deadline=datetime(2025, 1, 4, tzinfo=timezone.utc))

    assert service.all_notes() == [overdue, soon, nothing, later]
    assert service.notes_for_day(TODAY) == [overdue, nothing, later]
    assert service.notes_for_month(2025, 1) == [overdue, soon, nothing, later]
    assert service.notes_for_month(2024, 12) == []


def test_month_out_of_range_raises():
    service = make_service()
    with pytest.raises(NoteValidationError):
        service.notes_for_month(2025, 13)


def test_get_raises_on_missing():
    service = make_service()
    with pytest.raises(NoteNotFoundError):
        service.get_note("non-existent-id")


def test_update_changes_only_given_fields():
    clock = FakeClock()
    service = make_service(clock)
    note = service.create_note(TODAY, "A", importance=Importance.LOW,
                               deadline=datetime(2025, 1, 5, tzinfo=timezone.utc))
    clock.advance(hours=1)

    updated = service.update_note(note.note_id, content="B")

    assert updated.content == "B"
    assert updated.importance == Importance.LOW
    assert updated.deadline == note.deadline
    assert updated.created_at == note.created_at
    assert updated.updated_at == clock.fixed
    assert service.get_note(note.note_id) == updated


def test_update_none_clears_optional_fields():
    service = make_service()
    note = service.create_note(TODAY, "A", importance="MEDIUM",
                               deadline=datetime(2025, 1, 5, tzinfo=timezone.utc))

    updated = service.update_note(note.note_id, importance=None, deadline=None)
    assert updated.importance is None
    assert updated.deadline is None


def test_update_without_changes_returns_same_note():
    service = make_service()
    note = service.create_note(TODAY, "A")
    assert service.update_note(note.note_id) == note


def test_update_missing_note_raises():
    service = make_service()
    with pytest.raises(NoteNotFoundError):
        service.update_note("nope", content="x")


def test_set_status_moves_between_columns():
    clock = FakeClock()
    service = make_service(clock)
    note = service.create_note(TODAY, "A")

    in_progress = service.set_status(note.note_id, NoteStatus.IN_PROGRESS)
    assert in_progress.status == NoteStatus.IN_PROGRESS
    assert in_progress.in_progress is True

    clock.advance(hours=2)
    done = service.set_status(note.note_id, NoteStatus.DONE)
    assert done.status == NoteStatus.DONE
    assert done.completed_at == clock.fixed
    assert done.in_progress is False

    back = service.set_status(note.note_id, NoteStatus.TODO)
    assert back.status == NoteStatus.TODO
    assert back.completed_at is None
    assert back.created_at == note.created_at


def test_set_status_is_idempotent():
    clock = FakeClock()
    service = make_service(clock)
    note = service.create_note(TODAY, "A")

    first = service.set_status(note.note_id, NoteStatus.DONE)
    clock.advance(hours=1)
    second = service.set_status(note.note_id, NoteStatus.DONE)
    assert first == second


def test_board_columns_are_ranked():
    clock = FakeClock()
    service = make_service(clock)
    low = service.create_note(TODAY, "low", importance=Importance.LOW)
    clock.advance(minutes=1)
    high = service.create_note(TODAY, "high", importance=Importance.HIGH)
    clock.advance(minutes=1)
    doing = service.create_note(TODAY, "doing")
    clock.advance(minutes=1)
    finished = service.create_note(TODAY, "finished")
    doing = service.set_status(doing.note_id, NoteStatus.IN_PROGRESS)
    finished = service.set_status(finished.note_id, NoteStatus.DONE)

    board = service.board()

    assert list(board) == [NoteStatus.TODO, NoteStatus.IN_PROGRESS, NoteStatus.DONE]
    assert board[NoteStatus.TODO] == [high, low]
    assert board[NoteStatus.IN_PROGRESS] == [doing]
    assert board[NoteStatus.DONE] == [finished]


def test_delete_note_removes_images():
    clock = FakeClock()
    repo = InMemoryNoteRepository()
    storage = InMemoryImageStorage()
    images = ImageService(repo, storage, clock)
    service = NoteService(repo, InMemoryTagRepository(), FakeIdProvider(), clock, images=images)

    note = service.create_note(TODAY, "with image")
    storage.put(f"{note.note_id}/1-a.webp", b"x", "image/webp")
    storage.put("other/1-b.webp", b"y", "image/webp")

    service.delete_note(note.note_id)

    assert not repo.exists(note.note_id)
    assert list(storage.objects) == ["other/1-b.webp"]


def test_delete_missing_raises():
    service = make_service()
    with pytest.raises(NoteNotFoundError):
        service.delete_note("nope")


def test_delete_completed():
    service = make_service()
    keep = service.create_note(TODAY, "keep")
    for content in ("a", "b"):
        n = service.create_note(TODAY, content)
        service.set_status(n.note_id, NoteStatus.DONE)

    assert service.delete_completed() == 2
    assert service.all_notes() == [keep]


def test_calendar_month():
    tag = Tag(tag_id=TagId("t1"), name="praca", created_at=FakeClock().now())
    service = make_service(tags=[tag])
    service.create_note(date(2025, 2, 3), "a", tag_ids=["t1"])
    service.create_note(date(2025, 2, 3), "b")
    service.create_note(date(2025, 3, 1), "outside")

    days = service.calendar_month(2025, 2)

    assert len(days) == 28
    assert days[0].date == date(2025, 2, 1)
    marked = [d for d in days if d.has_note]
    assert [d.date for d in marked] == [date(2025, 2, 3)]
    assert marked[0].tag_ids == ("t1",)
