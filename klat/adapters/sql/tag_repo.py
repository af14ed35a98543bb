from __future__ import annotations
import sqlalchemy as db
from sqlalchemy.exc import IntegrityError, OperationalError
from klat.adapters.sql.schema import tags, preferences, encode_dt, decode_dt
from klat.domain.tag import Tag, TagId, Preferences
from klat.domain.errors import TagAlreadyExistsError, TagNotFoundError, DomainError


class SqlTagRepository:
    def __init__(self, engine: db.Engine) -> None:
        self.engine = engine

    def _to_row(self, tag: Tag) -> dict:
        return {
            "tag_id": str(tag.tag_id),
            "name": tag.name,
            "color": tag.color,
            "created_at": encode_dt(tag.created_at),
        }

    def _from_row(self, row) -> Tag:
        return Tag(
            tag_id=TagId(row["tag_id"]),
            name=row["name"],
            color=row["color"],
            created_at=decode_dt(row["created_at"]),
        )

    def _first(self, stmt) -> Tag | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
                return self._from_row(row) if row is not None else None
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def add(self, tag: Tag) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(db.insert(tags).values(**self._to_row(tag)))
        except IntegrityError:
            # PK albo UNIQUE(name)
            raise TagAlreadyExistsError(tag.name)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def get(self, tag_id: TagId) -> Tag | None:
        return self._first(db.select(tags).where(tags.c.tag_id == str(tag_id)))

    def get_by_name(self, name: str) -> Tag | None:
        return self._first(db.select(tags).where(tags.c.name == name))

    def update(self, tag: Tag) -> None:
        stmt = db.update(tags).where(tags.c.tag_id == str(tag.tag_id)).values(**self._to_row(tag))
        try:
            with self.engine.begin() as conn:
                if conn.execute(stmt).rowcount == 0:
                    raise TagNotFoundError(tag.tag_id)
        except IntegrityError:
            raise TagAlreadyExistsError(tag.name)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def remove(self, tag_id: TagId) -> None:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(db.delete(tags).where(tags.c.tag_id == str(tag_id)))
                if result.rowcount == 0:
                    raise TagNotFoundError(tag_id)
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))

    def list_all(self) -> list[Tag]:
        stmt = db.select(tags).order_by(tags.c.name.asc(), tags.c.tag_id.asc())
        try:
            with self.engine.connect() as conn:
                return [self._from_row(r) for r in conn.execute(stmt).mappings().all()]
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))


class SqlPreferencesRepository:
    """Jeden wiersz preferencji (pref_id = 1)."""

    ROW_ID = 1

    def __init__(self, engine: db.Engine) -> None:
        self.engine = engine

    def load(self) -> Preferences | None:
        stmt = db.select(preferences).where(preferences.c.pref_id == self.ROW_ID)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))
        if row is None:
            return None
        return Preferences(
            email_notifications=bool(row["email_notifications"]),
            updated_at=decode_dt(row["updated_at"]),
        )

    def save(self, prefs: Preferences) -> None:
        values = {
            "email_notifications": prefs.email_notifications,
            "updated_at": encode_dt(prefs.updated_at),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    db.update(preferences).where(preferences.c.pref_id == self.ROW_ID).values(**values)
                )
                if result.rowcount == 0:
                    conn.execute(db.insert(preferences).values(pref_id=self.ROW_ID, **values))
        except (OSError, OperationalError) as e:
            raise DomainError(str(e))
