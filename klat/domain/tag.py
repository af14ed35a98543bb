from typing import NewType
from datetime import datetime
from dataclasses import dataclass

TagId = NewType("TagId", str)

@dataclass(frozen=True)
class Tag():
    """Tag notatki. Nazwa unikalna w obrębie dziennika, kolor w formacie #RRGGBB."""
    tag_id: TagId
    name: str
    created_at: datetime
    color: str | None = None


@dataclass(frozen=True)
class Preferences():
    email_notifications: bool = True
    updated_at: datetime | None = None
