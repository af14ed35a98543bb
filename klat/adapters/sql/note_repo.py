from __future__ import annotations
from collections import defaultdict
from datetime import date
import sqlalchemy as db
from sqlalchemy.exc import IntegrityError, OperationalError
from klat.adapters.sql.schema import notes, note_tags, encode_dt, decode_dt
from klat.domain.note import Note, NoteId
from klat.domain.enums import Importance
from klat.domain.errors import NoteAlreadyExistsError, NoteNotFoundError, DomainError


class SqlNoteRepository:
    """Repozytorium notatek na SQLAlchemy Core.

    Notatka i jej powiązania z tagami (`note_tags`) zapisywane są w jednej transakcji.
    """

    def __init__(self, engine: db.Engine) -> None:
        self.engine = engine

    def _to_row(self, note: Note) -> dict:
        return {
            "note_id": str(note.note_id),
            "date": note.date.isoformat(),
            "content": note.content,
            "created_at": encode_dt(note.created_at),
            "updated_at": encode_dt(note.updated_at),
            "deadline": encode_dt(note.deadline),
            "importance": note.importance.value if isinstance(note.importance, Importance) else note.importance,
            "completed_at": encode_dt(note.completed_at),
            "in_progress": bool(note.in_progress),
            "images": list(note.images),
        }

    def _from_row(self, row, tag_ids: list[str]) -> Note:
        raw_importance = row["importance"]
        try:
            importance = Importance(raw_importance) if raw_importance else None
        except ValueError:
            importance = None

        return Note(
            note_id=NoteId(row["note_id"]),
            date=date.fromisoformat(row["date"][:10]),
            content=row["content"] or "",
            created_at=decode_dt(row["created_at"]),
            updated_at=decode_dt(row["updated_at"]),
            deadline=decode_dt(row["deadline"]),
            importance=importance,
            completed_at=decode_dt(row["completed_at"]),
            in_progress=bool(row["in_progress"]),
            tag_ids=tuple(sorted(tag_ids)),
            images=tuple(row["images"] or ()),
        )

    def _insert_links(self, conn, note: Note) -> None:
        if note.tag_ids:
            conn.execute(
                db.insert(note_tags),
                [{"note_id": str(note.note_id), "tag_id": t} for t in note.tag_ids],
            )

    def _select(self, stmt) -> list[Note]:
        stmt = stmt.order_by(notes.c.created_at.asc(), notes.c.note_id.asc())
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
                ids = [r["note_id"] for r in rows]
                links: dict[str, list[str]] = defaultdict(list)
                if ids:
                    link_rows = conn.execute(
                        db.select(note_tags).where(note_tags.c.note_id.in_(ids))
                    ).mappings().all()
                    for link in link_rows:
                        links[link["note_id"]].append(link["tag_id"])
                return [self._from_row(r, links[r["note_id"]]) for r in rows]
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def add(self, note: Note) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(db.insert(notes).values(**self._to_row(note)))
                self._insert_links(conn, note)
        except IntegrityError:
            # konflikt PK
            raise NoteAlreadyExistsError(note.note_id)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def get(self, note_id: NoteId) -> Note | None:
        found = self._select(db.select(notes).where(notes.c.note_id == str(note_id)))
        return found[0] if found else None

    def update(self, note: Note) -> None:
        rec = self._to_row(note)
        stmt = db.update(notes).where(notes.c.note_id == str(note.note_id)).values(**rec)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
                if result.rowcount == 0:
                    raise NoteNotFoundError(note.note_id)
                conn.execute(db.delete(note_tags).where(note_tags.c.note_id == str(note.note_id)))
                self._insert_links(conn, note)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def remove(self, note_id: NoteId) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(db.delete(note_tags).where(note_tags.c.note_id == str(note_id)))
                result = conn.execute(db.delete(notes).where(notes.c.note_id == str(note_id)))
                if result.rowcount == 0:
                    raise NoteNotFoundError(note_id)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def exists(self, note_id: NoteId) -> bool:
        stmt = (
            db.select(db.literal(1))
            .select_from(notes)
            .where(notes.c.note_id == str(note_id))
            .limit(1)
        )
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).first() is not None
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def list_all(self) -> list[Note]:
        return self._select(db.select(notes))

    def list_between(self, start: date, end: date) -> list[Note]:
        # 'YYYY-MM-DD' porównuje się leksykograficznie tak samo jak daty
        stmt = db.select(notes).where(
            notes.c.date >= start.isoformat(), notes.c.date <= end.isoformat()
        )
        return self._select(stmt)

    def _count(self, stmt) -> int:
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def count_all(self) -> int:
        return self._count(db.select(db.func.count()).select_from(notes))

    def count_with_tag(self, tag_id: str) -> int:
        return self._count(
            db.select(db.func.count()).select_from(note_tags).where(note_tags.c.tag_id == tag_id)
        )
