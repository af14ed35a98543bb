import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, TypeVar
from klat.domain.enums import Importance, UrgencyBucket


### COMMENTS
# ==========================================================
# Ranking notatek (domain/priority.py) — jedna kolejność dla wszystkich widoków.
# ==========================================================
# Klucz sortowania (leksykograficznie):
#   1. koszyk pilności terminu (rosnąco): 1 po terminie, 2 dziś, 3 jutro,
#      4 w ciągu 2..7 dni, 5 bez terminu, 6 później,
#   2. waga (malejąco): HIGH 3, MEDIUM 2, LOW 1, brak 0,
#   3. created_at (rosnąco, FIFO).
# Pozostałe remisy zachowują kolejność wejścia (sorted() jest stabilne).
#
# - Liczą się tylko dni kalendarzowe: godzina w terminie jest pomijana.
# - Funkcja jest czysta: nie mutuje wejścia, nie robi I/O, nie rzuca wyjątków.
# - Nieczytelny termin / created_at → fallback z RankingPolicy + WARNING w logu.

logger = logging.getLogger(__name__)

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

IMPORTANCE_SCORES = {
    Importance.HIGH: 3,
    Importance.MEDIUM: 2,
    Importance.LOW: 1,
}

N = TypeVar("N")


@dataclass(frozen=True)
class RankingPolicy:
    """
    Zachowanie rankingu dla nieczytelnych znaczników czasu.

    :param invalid_deadline_bucket: Koszyk dla terminu, którego nie da się sparsować
        (domyślnie traktowany jak brak terminu).
    :param invalid_created_at: Wartość zastępcza dla nieczytelnego `created_at`
        (domyślnie najwcześniejszy możliwy czas, więc notatka idzie na początek swojej grupy).
    """
    invalid_deadline_bucket: UrgencyBucket = UrgencyBucket.NO_DEADLINE
    invalid_created_at: datetime = EARLIEST


DEFAULT_POLICY = RankingPolicy()


def calendar_day(value: Any, tz: tzinfo | None = None) -> date:
    """Zwraca dzień kalendarzowy wartości w strefie `tz`.

    Akceptuje `datetime`, `date` oraz napis ISO-8601 (także z sufiksem 'Z').
    Naiwny czas jest traktowany jako czas ścienny w strefie `tz`.

    :raises ValueError: Gdy wartości nie da się zinterpretować.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"unsupported timestamp: {value!r}")


def to_utc(value: Any) -> datetime:
    """Normalizuje znacznik czasu do aware UTC (naiwny czas = UTC).

    :raises ValueError: Gdy wartości nie da się zinterpretować.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise ValueError(f"unsupported timestamp: {value!r}")


def bucket_for_days(days: int) -> UrgencyBucket:
    if days < 0:
        return UrgencyBucket.OVERDUE
    if days == 0:
        return UrgencyBucket.TODAY
    if days == 1:
        return UrgencyBucket.TOMORROW
    if days <= 7:
        return UrgencyBucket.THIS_WEEK
    return UrgencyBucket.LATER


def urgency_bucket(deadline: Any, today: date, tz: tzinfo | None = None) -> UrgencyBucket:
    """
    Koszyk pilności dla terminu względem dnia `today`.

    :param deadline: Termin albo None (brak terminu → NO_DEADLINE).
    :param today: Bieżący dzień kalendarzowy w strefie `tz`.
    :param tz: Strefa, w której liczone są dni.
    :raises ValueError: Gdy terminu nie da się zinterpretować.
    """
    if deadline is None or deadline == "":
        return UrgencyBucket.NO_DEADLINE
    return bucket_for_days((calendar_day(deadline, tz) - today).days)


def importance_score(importance: Any) -> int:
    """HIGH → 3, MEDIUM → 2, LOW → 1, brak lub nieznana wartość → 0."""
    if importance is None:
        return 0
    try:
        return IMPORTANCE_SCORES[Importance(importance)]
    except ValueError:
        return 0


def priority_key(
    note: Any,
    today: date,
    tz: tzinfo | None = None,
    policy: RankingPolicy = DEFAULT_POLICY,
) -> tuple[int, int, datetime]:
    """Klucz sortowania `(koszyk, -waga, created_at)` dla pojedynczej notatki."""
    note_id = getattr(note, "note_id", None)

    try:
        bucket = urgency_bucket(note.deadline, today, tz)
    except (ValueError, TypeError, OverflowError):
        logger.warning(
            "Note %s: unreadable deadline %r, ranking as %s",
            note_id, note.deadline, policy.invalid_deadline_bucket.name,
        )
        bucket = policy.invalid_deadline_bucket

    try:
        created_at = to_utc(note.created_at)
    except (ValueError, TypeError, OverflowError):
        logger.warning(
            "Note %s: unreadable created_at %r, using %s",
            note_id, note.created_at, policy.invalid_created_at.isoformat(),
        )
        created_at = policy.invalid_created_at

    return int(bucket), -importance_score(note.importance), created_at


def local_today(now: datetime, tz: tzinfo | None = None) -> date:
    """Dzień kalendarzowy `now` w strefie `tz` (domyślnie strefa samego `now`)."""
    if now.tzinfo is not None and tz is not None:
        return now.astimezone(tz).date()
    return now.date()


def rank_notes(
    notes: Iterable[N],
    now: datetime,
    *,
    tz: tzinfo | None = None,
    policy: RankingPolicy = DEFAULT_POLICY,
) -> list[N]:
    """
    Zwraca NOWĄ listę notatek w kolejności priorytetu; wejście nie jest modyfikowane.

    - Dzień "dziś" to dzień kalendarzowy `now` w strefie `tz`
      (gdy `tz` jest None — w strefie, w której podano `now`).
    - Sortowanie stabilne: przy identycznym kluczu zostaje kolejność wejścia.
    - Nigdy nie rzuca wyjątku z powodu złych dat (patrz `RankingPolicy`).

    :param notes: Dowolna kolekcja obiektów z polami `deadline`, `importance`, `created_at`.
    :param now: Bieżący moment (zwykle `Clock.now()`).
    :param tz: Strefa czasowa użytkownika.
    :param policy: Fallback dla nieczytelnych znaczników czasu.
    :return: Posortowana lista.
    """
    zone = tz or now.tzinfo
    today = local_today(now, zone)
    return sorted(notes, key=lambda n: priority_key(n, today, zone, policy))
