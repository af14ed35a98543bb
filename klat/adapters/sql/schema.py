from __future__ import annotations
import logging
from pathlib import Path
from datetime import datetime, timezone
import sqlalchemy as db

logger = logging.getLogger(__name__)

meta = db.MetaData()

notes = db.Table(
    "notes",
    meta,
    db.Column("note_id", db.String, primary_key=True),
    db.Column("date", db.String, nullable=False, index=True),     # 'YYYY-MM-DD'
    db.Column("content", db.Text, nullable=False, default=""),
    db.Column("created_at", db.String, nullable=False),            # ISO8601 '...Z'
    db.Column("updated_at", db.String, nullable=True),
    db.Column("deadline", db.String, nullable=True),
    db.Column("importance", db.String, nullable=True),             # 'LOW'/'MEDIUM'/'HIGH'
    db.Column("completed_at", db.String, nullable=True),
    db.Column("in_progress", db.Boolean, nullable=False, default=False),
    db.Column("images", db.JSON, nullable=False, default=list),
)

tags = db.Table(
    "tags",
    meta,
    db.Column("tag_id", db.String, primary_key=True),
    db.Column("name", db.String(50), nullable=False, unique=True),
    db.Column("color", db.String(7), nullable=True),
    db.Column("created_at", db.String, nullable=False),
)

note_tags = db.Table(
    "note_tags",
    meta,
    db.Column("note_id", db.String, db.ForeignKey("notes.note_id"), primary_key=True),
    db.Column("tag_id", db.String, db.ForeignKey("tags.tag_id"), primary_key=True),
)

preferences = db.Table(
    "preferences",
    meta,
    db.Column("pref_id", db.Integer, primary_key=True),
    db.Column("email_notifications", db.Boolean, nullable=False, default=True),
    db.Column("updated_at", db.String, nullable=True),
)


def build_engine(url: str | Path) -> db.Engine:
    """
    url: np. 'sqlite:///data/klat.db' lub Path do pliku (zostanie zrobiony URL).
    Tworzy brakujące tabele.
    """
    if isinstance(url, Path):
        url.parent.mkdir(parents=True, exist_ok=True)
        db_url = f"sqlite:///{url}"
    else:
        db_url = url

    engine = db.create_engine(db_url, future=True)
    meta.create_all(engine)
    logger.debug("Database ready at %s", db_url)
    return engine


def encode_dt(dt: datetime | None) -> str | None:
    # ISO 8601 w UTC z sufiksem 'Z'
    if dt is None:
        return None
    if isinstance(dt, str):
        return dt
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def decode_dt(s: str | None) -> datetime | str | None:
    """'...Z' -> aware UTC. Naiwny zapis traktujemy jako UTC.

    Wartość, której nie da się sparsować (np. wpisana przez inne narzędzie), wraca
    bez zmian; ranking notatek ma dla niej własny fallback.
    """
    if s is None:
        return None
    try:
        value = datetime.fromisoformat(s.replace("Z", "+00:00"))
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        logger.warning("Unreadable timestamp in database: %r", s)
        return s
