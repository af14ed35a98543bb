import re
import pytest
from datetime import date, datetime, timezone
from PIL import Image
from typer.testing import CliRunner
from klat.api.cli import app
from klat.adapters.sql.schema import build_engine
from klat.adapters.sql.note_repo import SqlNoteRepository
from klat.services.note_service import NoteService
from klat.domain.note import Note, NoteId
from klat.domain.errors import DomainError

runner = CliRunner()

NOTE_ID_RE = re.compile(r"note_[0-9a-f-]{36}")
TAG_ID_RE = re.compile(r"tag_[0-9a-f-]{36}")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("KLAT_CONFIG", "KLAT_DB", "KLAT_IMAGES", "KLAT_TZ", "KLAT_LOG_LEVEL", "KLAT_INVALID_DEADLINE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def klat(tmp_path):
    db_path = tmp_path / "klat.db"

    def invoke(*args, input=None):
        return runner.invoke(app, ["--db", str(db_path), *args], input=input)
    return invoke


def add_note(klat, *args) -> str:
    result = klat("add", *args)
    assert result.exit_code == 0, result.output
    return NOTE_ID_RE.search(result.output).group(0)


def test_add_and_show(klat):
    note_id = add_note(klat, "Kup mleko", "--date", "2025-01-05", "--importance", "high")

    result = klat("show", note_id)
    assert result.exit_code == 0
    assert "Kup mleko" in result.output
    assert "2025-01-05" in result.output
    assert "HIGH" in result.output


def test_notes_persist_between_invocations(klat):
    add_note(klat, "pierwsza")
    add_note(klat, "druga")

    result = klat("list")
    assert result.exit_code == 0
    assert "Razem: 2" in result.output


def test_list_by_day_and_month(klat):
    add_note(klat, "styczeń", "--date", "2025-01-05")
    add_note(klat, "luty", "--date", "2025-02-10")

    assert "Razem: 1" in klat("list", "--date", "2025-01-05").output
    assert "Razem: 1" in klat("list", "--month", "2025-02").output
    assert "Razem: 0" in klat("list", "--month", "2024-12").output


def test_bad_month_is_validation_error(klat):
    result = klat("list", "--month", "2025-13")
    assert result.exit_code == 1
    assert "Błąd walidacji" in result.output

    result = klat("calendar", "styczeń")
    assert result.exit_code == 1


def test_show_missing_note(klat):
    result = klat("show", "note_missing")
    assert result.exit_code == 1
    assert "Nie znaleziono" in result.output


def test_edit_and_clear_fields(klat):
    note_id = add_note(klat, "stara", "--deadline", "2030-01-01 10:00", "--importance", "low")

    result = klat("edit", note_id, "--content", "nowa", "--clear-deadline")
    assert result.exit_code == 0

    shown = klat("show", note_id).output
    assert "nowa" in shown
    assert "Termin: -" in shown
    assert "LOW" in shown


def test_move_and_board(klat):
    note_id = add_note(klat, "zadanie")

    result = klat("move", note_id, "progress")
    assert result.exit_code == 0
    assert "In Progress" in result.output

    board = klat("board").output
    assert "To Do (0)" in board
    assert "In Progress (1)" in board
    assert "Done (0)" in board


def test_clear_done_asks_for_confirmation(klat):
    done_id = add_note(klat, "zrobione")
    add_note(klat, "do zrobienia")
    klat("move", done_id, "done")

    assert "Anulowano" in klat("clear-done", input="n\n").output
    assert "Razem: 2" in klat("list").output

    result = klat("clear-done", "--yes")
    assert result.exit_code == 0
    assert "Usunięto 1" in result.output
    assert "Razem: 1" in klat("list").output


def test_rm(klat):
    note_id = add_note(klat, "do usunięcia")
    assert klat("rm", note_id).exit_code == 0
    assert klat("rm", note_id).exit_code == 1


def test_tags_flow(klat):
    result = klat("tag", "add", "praca", "--color", "#FF0000")
    assert result.exit_code == 0
    tag_id = TAG_ID_RE.search(result.output).group(0)

    add_note(klat, "raport kwartalny", "--tag", "praca")

    listing = klat("tag", "list").output
    assert "praca" in listing

    in_use = klat("tag", "rm", tag_id)
    assert in_use.exit_code == 1
    assert "używany" in in_use.output

    assert klat("tag", "add", "praca").exit_code == 1
    assert klat("add", "x", "--tag", "nieznany").exit_code == 1


def test_search(klat):
    add_note(klat, "Spotkanie z klientem", "--date", "2025-01-05")
    add_note(klat, "Zakupy", "--date", "2025-01-06")

    result = klat("search", "spotkanie")
    assert result.exit_code == 0
    assert "Wyników: 1" in result.output

    assert "Brak wyników" in klat("search", "nic-takiego").output
    assert "Wyników: 1" in klat("search", "zakupy", "--from", "2025-01-06", "--to", "2025-01-06").output


def test_calendar_marks_days(klat):
    add_note(klat, "x", "--date", "2025-02-03")
    result = klat("calendar", "2025-02")
    assert result.exit_code == 0
    assert "2025-02" in result.output
    assert "3•" in result.output


def test_image_add_and_rm(klat, tmp_path):
    note_id = add_note(klat, "z obrazem")
    picture = tmp_path / "zdjecie.png"
    Image.new("RGB", (64, 32), color=(200, 10, 10)).save(picture)

    result = klat("image", "add", note_id, str(picture))
    assert result.exit_code == 0, result.output
    stored = list((tmp_path / "images" / note_id).iterdir())
    assert len(stored) == 1 and stored[0].suffix == ".webp"

    path = f"{note_id}/{stored[0].name}"
    assert klat("image", "rm", "note_other", path).exit_code == 1
    assert klat("image", "rm", note_id, path).exit_code == 0
    assert list((tmp_path / "images" / note_id).iterdir()) == []


def test_prefs(klat):
    assert "tak" in klat("prefs", "show").output
    assert klat("prefs", "set", "--no-email").exit_code == 0
    assert "Powiadomienia e-mail: nie" in klat("prefs", "show").output


def test_bad_config_file(tmp_path):
    bad = tmp_path / "klat.yaml"
    bad.write_text("klat:\n  invalid_deadline: sometimes\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(bad), "list"])
    assert result.exit_code == 1
    assert "Błąd konfiguracji" in result.output



def test_clear_done_reports_domain_error(klat, monkeypatch):
    def broken_board(self):
        raise DomainError("baza niedostępna")
    monkeypatch.setattr(NoteService, "board", broken_board)

    result = klat("clear-done", input="y\n")
    assert result.exit_code == 1
    assert "baza niedostępna" in result.output


def test_out_of_range_deadline_still_lists(klat, tmp_path):
    repo = SqlNoteRepository(build_engine(tmp_path / "klat.db"))
    repo.add(Note(note_id=NoteId("note_ancient"), date=date(2025, 1, 1),
                  created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
                  content="stary termin", deadline="0001-01-01T00:00:00+05:00"))

    result = klat("list")
    assert result.exit_code == 0, result.output
    assert "Razem: 1" in result.output
    assert klat("show", "note_ancient").exit_code == 0
