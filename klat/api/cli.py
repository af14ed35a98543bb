import re
import logging
import mimetypes
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from math import ceil
from pathlib import Path
from typing import Optional
from typer import Argument, Exit, Option, Typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from klat.config import Settings, load_settings
from klat.domain.errors import (
    DomainError, NoteNotFoundError, NoteValidationError, TagNotFoundError, ConfigError,
)
from klat.domain.enums import Importance, NoteStatus
from klat.domain.note import Note, NoteId
from klat.domain.tag import TagId
from klat.domain.priority import urgency_bucket, local_today
from klat.ports.clock import Clock
from klat.adapters.memory.note_repo import InMemoryNoteRepository
from klat.adapters.memory.tag_repo import InMemoryTagRepository, InMemoryPreferencesRepository
from klat.adapters.sql.schema import build_engine
from klat.adapters.sql.note_repo import SqlNoteRepository
from klat.adapters.sql.tag_repo import SqlTagRepository, SqlPreferencesRepository
from klat.adapters.storage.file_storage import FileImageStorage, InMemoryImageStorage
from klat.adapters.system.clock_system import SystemClock
from klat.adapters.system.id_provider_uuid import UuidIdProvider
from klat.services.note_service import NoteService
from klat.services.tag_service import TagService
from klat.services.search_service import SearchService
from klat.services.image_service import ImageService
from klat.services.preferences_service import PreferencesService
from klat.api.colors import NoteColor, IMPORTANCE_COLORS, URGENCY_LABELS


### COMMENTS
# ==========================================================
# CLI (Typer + Rich) — interfejs użytkownika dziennika klat.
# ==========================================================
# Rola:
# - Mapuje komendy na metody serwisów (notatki, tagi, wyszukiwanie, obrazy, preferencje).
# - Wyświetla wyniki w czytelnej formie (tabele, panele, kolory, kalendarz, kanban).
# - Łapie DomainError, drukuje przyjazny komunikat i kończy z kodem 1.
#
# Zasady:
# - Zero logiki biznesowej — kolejność list ustala NoteService (ranking priorytetu).
# - Jednorazowy bootstrap zależności (ustawienia + repo + serwisy) w callbacku.

app = Typer(help="klat — dziennik z notatkami, tagami i tablicą kanban")
tag_app = Typer(help="Zarządzanie tagami")
image_app = Typer(help="Załączniki graficzne")
prefs_app = Typer(help="Preferencje użytkownika")
app.add_typer(tag_app, name="tag")
app.add_typer(image_app, name="image")
app.add_typer(prefs_app, name="prefs")

console = Console()
err_console = Console(stderr=True)

DATE_FORMATS = ["%Y-%m-%d"]
DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"]
MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass
class Services:
    notes: NoteService
    tags: TagService
    search: SearchService
    images: ImageService
    prefs: PreferencesService
    settings: Settings


services: Services | None = None  # ustawimy w callbacku


class Column(str, Enum):
    todo = "todo"
    progress = "progress"
    done = "done"


COLUMN_STATUS = {
    Column.todo: NoteStatus.TODO,
    Column.progress: NoteStatus.IN_PROGRESS,
    Column.done: NoteStatus.DONE,
}


def setup_logging(level: str) -> None:
    """Logi na stderr przez RichHandler."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_services(settings: Settings, clock: Clock | None = None) -> Services:
    """Tworzy serwisy na bazie wybranych adapterów.
    - Brak bazy -> InMemory (notatki znikają po zakończeniu procesu)
    - Podana baza -> SQLite przez SQLAlchemy + obrazy w katalogu obok bazy
    """
    clock = clock or SystemClock()
    if settings.database is not None:
        engine = build_engine(settings.database)
        note_repo = SqlNoteRepository(engine)
        tag_repo = SqlTagRepository(engine)
        prefs_repo = SqlPreferencesRepository(engine)
    else:
        note_repo = InMemoryNoteRepository()
        tag_repo = InMemoryTagRepository()
        prefs_repo = InMemoryPreferencesRepository()

    images_dir = settings.resolved_images_dir()
    storage = FileImageStorage(images_dir) if images_dir is not None else InMemoryImageStorage()

    image_service = ImageService(note_repo, storage, clock)
    return Services(
        notes=NoteService(
            note_repo, tag_repo, UuidIdProvider("note_"), clock,
            images=image_service, tz=settings.zone(), policy=settings.ranking_policy(),
        ),
        tags=TagService(tag_repo, note_repo, UuidIdProvider("tag_"), clock),
        search=SearchService(note_repo, tag_repo),
        images=image_service,
        prefs=PreferencesService(prefs_repo, clock),
        settings=settings,
    )


@app.callback()
def main(
    db: Optional[Path] = Option(None, "--db", help="Plik bazy SQLite (włącza tryb trwały)"),
    config: Optional[Path] = Option(None, "--config", "-c", help="Plik konfiguracyjny YAML"),
    tz: Optional[str] = Option(None, "--tz", help="Strefa czasowa, np. Europe/Warsaw"),
    verbose: bool = Option(False, "--verbose", "-v", help="Logi DEBUG"),
) -> None:
    """Bootstrap zależności na starcie procesu CLI."""
    global services
    try:
        settings = load_settings(config).with_overrides(
            database=db, timezone=tz, log_level="DEBUG" if verbose else None,
        )
        setup_logging(settings.log_level)
        services = build_services(settings)
    except DomainError as e:
        show_error(e, "Błąd konfiguracji")


# --- prezentacja -------------------------------------------------------------

def show_error(e: Exception, title: str = "Błąd domenowy", hint: str | None = None) -> None:
    """Czerwony panel z komunikatem i kod wyjścia 1."""
    body = f"❌ {escape(str(e))}"
    if hint:
        body += f"\n[dim]{hint}[/]"
    console.print(Panel.fit(body, title=title, border_style="red"))
    raise Exit(code=1)


def handle(e: DomainError) -> None:
    if isinstance(e, (NoteNotFoundError, TagNotFoundError)):
        show_error(e, "Nie znaleziono", "Użyj 'klat list' albo 'klat tag list', żeby znaleźć poprawne ID")
    if isinstance(e, NoteValidationError):
        show_error(e, "Błąd walidacji")
    if isinstance(e, ConfigError):
        show_error(e, "Błąd konfiguracji")
    show_error(e)


def short_id(note_id: str, n: int = 13) -> str:
    """Skrócone ID do tabel (prefiks + początek UUID)."""
    return note_id[:n]


def preview(content: str, max_length: int = 60) -> str:
    """Treść bez formatowania markdown, przycięta do `max_length`."""
    stripped = re.sub(r"#{1,6}\s", "", content)
    stripped = re.sub(r"\*\*(.+?)\*\*", r"\1", stripped)
    stripped = re.sub(r"\*(.+?)\*", r"\1", stripped)
    stripped = re.sub(r"\[(.+?)\]\(.+?\)", r"\1", stripped)
    stripped = re.sub(r"`(.+?)`", r"\1", stripped)
    stripped = re.sub(r"^[-*+]\s", "", stripped, flags=re.MULTILINE)
    stripped = " ".join(stripped.split())
    if len(stripped) > max_length:
        return stripped[:max_length] + "..."
    return stripped


def color_importance(importance: Importance | None) -> str:
    if importance is None:
        return f"{NoteColor.DIM}-{NoteColor.RESET}"
    return f"{IMPORTANCE_COLORS[importance]}{importance}{NoteColor.RESET}"


def color_urgency(note: Note) -> str:
    settings = services.settings
    zone = settings.zone()
    today = local_today(services.notes.clock.now(), zone)
    try:
        bucket = urgency_bucket(note.deadline, today, zone)
    except (ValueError, TypeError, OverflowError):
        bucket = settings.ranking_policy().invalid_deadline_bucket
    color, label = URGENCY_LABELS[bucket]
    return f"{color}{label}{NoteColor.RESET}"


def format_dt(value) -> str:
    if isinstance(value, datetime):
        return value.astimezone(services.settings.zone()).strftime("%Y-%m-%d %H:%M")
    return str(value) if value else "-"


def tag_names(note: Note) -> str:
    names = []
    for tag_id in note.tag_ids:
        tag = services.tags.repo.get(TagId(tag_id))
        names.append(tag.name if tag else tag_id)
    return ", ".join(names)


def render_notes(items: list[Note], title: str | None = None, page: int = 1, page_size: int = 0) -> None:
    """Tabela Rich z notatkami w kolejności rankingu (+ stopka paginacji)."""
    total = len(items)
    if page_size > 0:
        items = items[(page - 1) * page_size: page * page_size]

    table = Table(title=title, show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Dzień", no_wrap=True)
    table.add_column("Termin", no_wrap=True)
    table.add_column("Pilność", no_wrap=True)
    table.add_column("Waga", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Tagi")
    table.add_column("Treść")

    for n in items:
        table.add_row(
            short_id(n.note_id),
            n.date.isoformat(),
            format_dt(n.deadline),
            color_urgency(n),
            color_importance(n.importance),
            str(n.status),
            escape(tag_names(n)),
            escape(preview(n.content)),
        )

    console.print(table)
    if page_size > 0:
        pages = max(1, ceil(total / page_size))
        console.print(f"[dim]Strona {page}/{pages} • Razem: {total} • Page size: {page_size}[/dim]")
    else:
        console.print(f"[dim]Razem: {total}[/dim]")


def parse_month(value: str) -> tuple[int, int]:
    match = MONTH_RE.match(value)
    if not match:
        raise NoteValidationError("month", "Miesiąc musi mieć format YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def today() -> date:
    return local_today(services.notes.clock.now(), services.settings.zone())


# --- notatki -------------------------------------------------------------------

@app.command("add")
def add(
    content: str = Argument("", help="Treść notatki (markdown)"),
    day: Optional[datetime] = Option(None, "--date", "-d", formats=DATE_FORMATS, help="Dzień (domyślnie dziś)"),
    deadline: Optional[datetime] = Option(None, "--deadline", formats=DATETIME_FORMATS),
    importance: Optional[Importance] = Option(None, "--importance", "-i", case_sensitive=False),
    tags: Optional[list[str]] = Option(None, "--tag", "-t", help="Nazwa tagu (można powtórzyć)"),
) -> None:
    """
    Dodaje nową notatkę.

    Flow:
    - Nazwy tagów → ID (TagService.resolve_names)
    - service.create_note(...)
    - Sukces: Panel „✅ Dodano notatkę” z pełnym ID.
    """
    try:
        tag_ids = services.tags.resolve_names(tags or [])
        note = services.notes.create_note(
            day.date() if day else today(),
            content=content,
            deadline=deadline,
            importance=importance,
            tag_ids=tag_ids,
        )
        console.print(Panel.fit(
            f"✅ Dodano notatkę\n"
            f"[cyan]ID:[/cyan] {note.note_id}\n"
            f"[dim]Dzień:[/dim] {note.date.isoformat()}"
            + (f"\n[dim]Termin:[/dim] {format_dt(note.deadline)}" if note.deadline else ""),
            title="Sukces",
            border_style="green",
        ))
    except DomainError as e:
        handle(e)


@app.command("list")
def list_cmd(
    day: Optional[datetime] = Option(None, "--date", "-d", formats=DATE_FORMATS),
    month: Optional[str] = Option(None, "--month", "-m", help="YYYY-MM"),
    page: int = Option(1, "--page", "-p", min=1),
    page_size: int = Option(20, "--page-size", "-s", min=1),
) -> None:
    """
    Listuje notatki (dzień, miesiąc albo wszystkie) w kolejności priorytetu:
    po terminie, dziś, jutro, w tym tygodniu, bez terminu, później.
    """
    try:
        if day:
            items, title = services.notes.notes_for_day(day.date()), f"Notatki {day.date().isoformat()}"
        elif month:
            year, mon = parse_month(month)
            items, title = services.notes.notes_for_month(year, mon), f"Notatki {month}"
        else:
            items, title = services.notes.all_notes(), "Wszystkie notatki"
        render_notes(items, title=title, page=page, page_size=page_size)
    except DomainError as e:
        handle(e)


@app.command("show")
def show(note_id: str) -> None:
    """Pokazuje szczegóły pojedynczej notatki."""
    try:
        note = services.notes.get_note(NoteId(note_id))
        lines = [
            f"ID: {note.note_id}",
            f"Dzień: {note.date.isoformat()}",
            f"Termin: {format_dt(note.deadline)}",
            f"Pilność: {color_urgency(note)}",
            f"Waga: {color_importance(note.importance)}",
            f"Status: {note.status}",
            f"Tagi: {escape(tag_names(note)) or '[dim]brak[/]'}",
            f"Utworzono: {format_dt(note.created_at)}",
            f"Zmieniono: {format_dt(note.updated_at)}",
        ]
        if note.completed_at:
            lines.append(f"Ukończono: {format_dt(note.completed_at)}")
        for path in note.images:
            lines.append(f"Obraz: {services.images.url_for(path)}")
        lines.append("")
        lines.append(escape(note.content) or "[dim]brak treści[/]")
        console.print(Panel.fit("\n".join(lines), title="Szczegóły notatki", border_style="cyan"))
    except DomainError as e:
        handle(e)


@app.command("edit")
def edit(
    note_id: str,
    content: Optional[str] = Option(None, "--content"),
    deadline: Optional[datetime] = Option(None, "--deadline", formats=DATETIME_FORMATS),
    clear_deadline: bool = Option(False, "--clear-deadline"),
    importance: Optional[Importance] = Option(None, "--importance", "-i", case_sensitive=False),
    clear_importance: bool = Option(False, "--clear-importance"),
    tags: Optional[list[str]] = Option(None, "--tag", "-t", help="Podmienia zestaw tagów"),
    clear_tags: bool = Option(False, "--clear-tags"),
) -> None:
    """Zmienia wybrane pola notatki; pozostałe zostają bez zmian."""
    changes = {}
    if content is not None:
        changes["content"] = content
    if clear_deadline:
        changes["deadline"] = None
    elif deadline is not None:
        changes["deadline"] = deadline
    if clear_importance:
        changes["importance"] = None
    elif importance is not None:
        changes["importance"] = importance
    try:
        if clear_tags:
            changes["tag_ids"] = []
        elif tags:
            changes["tag_ids"] = services.tags.resolve_names(tags)
        note = services.notes.update_note(NoteId(note_id), **changes)
        console.print(Panel.fit(
            f"✅ Zapisano\nID: {note.note_id}\nTermin: {format_dt(note.deadline)}\n"
            f"Waga: {color_importance(note.importance)}",
            title="Sukces",
            border_style="green",
        ))
    except DomainError as e:
        handle(e)


@app.command("rm")
def rm(note_id: str) -> None:
    """Usuwa notatkę razem z jej obrazami."""
    try:
        services.notes.delete_note(NoteId(note_id))
        console.print(Panel.fit(
            f"🟡 Notatka usunięta\nID: {note_id}",
            title="Usunięto",
            border_style="yellow",
        ))
    except DomainError as e:
        handle(e)


@app.command("move")
def move(note_id: str, column: Column = Argument(..., help="todo | progress | done")) -> None:
    """Przenosi notatkę do kolumny tablicy kanban."""
    try:
        note = services.notes.set_status(NoteId(note_id), COLUMN_STATUS[column])
        console.print(Panel.fit(
            f"✅ Sukces! ID: {note.note_id}\nStatus: {note.status}",
            title="Sukces",
            border_style="green",
        ))
    except DomainError as e:
        handle(e)


@app.command("board")
def board() -> None:
    """Tablica kanban: To Do / In Progress / Done, każda kolumna w kolejności priorytetu."""
    try:
        columns = services.notes.board()
    except DomainError as e:
        handle(e)
        return

    table = Table(show_lines=True, header_style="bold")
    for status, items in columns.items():
        table.add_column(f"{status} ({len(items)})")

    height = max((len(items) for items in columns.values()), default=0)
    for row in range(height):
        cells = []
        for items in columns.values():
            if row < len(items):
                n = items[row]
                cells.append(
                    f"{short_id(n.note_id)} {color_importance(n.importance)}\n"
                    f"{color_urgency(n)}\n{escape(preview(n.content, 40))}"
                )
            else:
                cells.append("")
        table.add_row(*cells)
    console.print(table)


@app.command("clear-done")
def clear_done(yes: bool = Option(False, "--yes", "-y", help="Bez pytania o potwierdzenie")) -> None:
    """Usuwa wszystkie ukończone notatki."""
    try:
        if not yes:
            done = len(services.notes.board()[NoteStatus.DONE])
            if not console.input(f"Usunąć {done} ukończonych notatek? \\[y/N] ").strip().lower().startswith("y"):
                console.print("[dim]Anulowano[/]")
                return
        removed = services.notes.delete_completed()
        console.print(Panel.fit(f"🗑️ Usunięto {removed} notatek", border_style="yellow"))
    except DomainError as e:
        handle(e)


@app.command("calendar")
def calendar_cmd(month: Optional[str] = Argument(None, help="YYYY-MM (domyślnie bieżący)")) -> None:
    """Widok miesiąca: dni z notatkami oznaczone kropką."""
    try:
        if month:
            year, mon = parse_month(month)
        else:
            current = today()
            year, mon = current.year, current.month
        days = services.notes.calendar_month(year, mon)
    except DomainError as e:
        handle(e)
        return

    table = Table(title=f"{year}-{mon:02d}", header_style="bold")
    for name in ("Pn", "Wt", "Śr", "Cz", "Pt", "So", "Nd"):
        table.add_column(name, justify="right")

    current = today()
    cells = [""] * days[0].date.weekday()
    for d in days:
        text = str(d.date.day)
        if d.has_note:
            text = f"[bold magenta]{text}•[/]"
        if d.date == current:
            text = f"[reverse]{text}[/]"
        cells.append(text)
    cells += [""] * (-len(cells) % 7)
    for i in range(0, len(cells), 7):
        table.add_row(*cells[i:i + 7])
    console.print(table)


@app.command("search")
def search(
    query: str = Argument("", help="Szukany tekst"),
    tags: Optional[list[str]] = Option(None, "--tag", "-t"),
    start: Optional[datetime] = Option(None, "--from", formats=DATE_FORMATS),
    end: Optional[datetime] = Option(None, "--to", formats=DATE_FORMATS),
) -> None:
    """Wyszukiwanie w treści notatek i nazwach tagów."""
    try:
        tag_ids = services.tags.resolve_names(tags or [])
        results = services.search.search(
            query,
            tag_ids=tag_ids,
            start=start.date() if start else None,
            end=end.date() if end else None,
        )
    except DomainError as e:
        handle(e)
        return

    if not results:
        console.print("[dim]Brak wyników[/]")
        return

    table = Table(show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Dzień", no_wrap=True)
    table.add_column("Fragment")
    for r in results:
        snippet = escape(r.snippet)
        for word in r.highlights:
            snippet = re.sub(rf"\b{re.escape(word)}\b", f"[bold yellow]{word}[/]", snippet)
        table.add_row(short_id(r.note.note_id), r.note.date.isoformat(), snippet)
    console.print(table)
    console.print(f"[dim]Wyników: {len(results)}[/dim]")


# --- tagi ----------------------------------------------------------------------

@tag_app.command("add")
def tag_add(name: str, color: Optional[str] = Option(None, "--color", help="#RRGGBB")) -> None:
    try:
        tag = services.tags.create_tag(name, color)
        console.print(Panel.fit(f"✅ Dodano tag\nID: {tag.tag_id}\nNazwa: {tag.name}", title="Sukces", border_style="green"))
    except DomainError as e:
        handle(e)


@tag_app.command("list")
def tag_list() -> None:
    try:
        usages = services.tags.list_tags()
    except DomainError as e:
        handle(e)
        return
    table = Table(header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Nazwa")
    table.add_column("Kolor")
    table.add_column("Notatek", justify="right")
    for u in usages:
        color = f"[{u.tag.color}]■[/] {u.tag.color}" if u.tag.color else "-"
        table.add_row(u.tag.tag_id, escape(u.tag.name), color, str(u.note_count))
    console.print(table)


@tag_app.command("edit")
def tag_edit(
    tag_id: str,
    name: Optional[str] = Option(None, "--name"),
    color: Optional[str] = Option(None, "--color"),
) -> None:
    try:
        tag = services.tags.update_tag(TagId(tag_id), name=name, color=color)
        console.print(Panel.fit(f"✅ Zapisano tag {tag.name}", title="Sukces", border_style="green"))
    except DomainError as e:
        handle(e)


@tag_app.command("rm")
def tag_rm(tag_id: str) -> None:
    try:
        services.tags.delete_tag(TagId(tag_id))
        console.print(Panel.fit(f"🟡 Tag usunięty\nID: {tag_id}", title="Usunięto", border_style="yellow"))
    except DomainError as e:
        handle(e)


# --- obrazy --------------------------------------------------------------------

@image_app.command("add")
def image_add(note_id: str, file: Path = Argument(..., exists=True, dir_okay=False, readable=True)) -> None:
    """Dołącza obraz (jpeg/png/gif/webp, max 5MB) — zapisany jako WebP."""
    mime_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    try:
        path = services.images.upload(NoteId(note_id), file.name, file.read_bytes(), mime_type)
        console.print(Panel.fit(f"✅ Dodano obraz\n{services.images.url_for(path)}", title="Sukces", border_style="green"))
    except DomainError as e:
        handle(e)


@image_app.command("rm")
def image_rm(note_id: str, path: str) -> None:
    try:
        services.images.delete(NoteId(note_id), path)
        console.print(Panel.fit(f"🟡 Obraz usunięty\n{path}", title="Usunięto", border_style="yellow"))
    except DomainError as e:
        handle(e)


# --- preferencje ---------------------------------------------------------------

@prefs_app.command("show")
def prefs_show() -> None:
    prefs = services.prefs.get()
    settings = services.settings
    console.print(Panel.fit(
        f"Powiadomienia e-mail: {'tak' if prefs.email_notifications else 'nie'}\n"
        f"[dim]Baza:[/dim] {settings.database or 'pamięć'}\n"
        f"[dim]Strefa:[/dim] {settings.timezone or 'systemowa'}",
        title="Preferencje",
        border_style="cyan",
    ))


@prefs_app.command("set")
def prefs_set(email: Optional[bool] = Option(None, "--email/--no-email")) -> None:
    try:
        prefs = services.prefs.update(email_notifications=email)
        console.print(Panel.fit(
            f"✅ Zapisano\nPowiadomienia e-mail: {'tak' if prefs.email_notifications else 'nie'}",
            title="Sukces",
            border_style="green",
        ))
    except DomainError as e:
        handle(e)


if __name__ == "__main__":
    app()
