from enum import Enum
from klat.domain.enums import Importance, UrgencyBucket

class NoteColor(Enum):
    RED = "[red]"
    ORANGE = "[dark_orange]"
    YELLOW = "[yellow]"
    CYAN = "[cyan]"
    BLUE = "[blue]"
    GREEN = "[green]"
    DIM = "[dim]"
    RESET = "[/]"

    def __str__(self):
        return self.value


IMPORTANCE_COLORS = {
    Importance.HIGH: NoteColor.RED,
    Importance.MEDIUM: NoteColor.ORANGE,
    Importance.LOW: NoteColor.CYAN,
}

URGENCY_LABELS = {
    UrgencyBucket.OVERDUE: (NoteColor.RED, "Po terminie"),
    UrgencyBucket.TODAY: (NoteColor.ORANGE, "Dziś"),
    UrgencyBucket.TOMORROW: (NoteColor.YELLOW, "Jutro"),
    UrgencyBucket.THIS_WEEK: (NoteColor.BLUE, "W tym tygodniu"),
    UrgencyBucket.NO_DEADLINE: (NoteColor.DIM, "Bez terminu"),
    UrgencyBucket.LATER: (NoteColor.GREEN, "Później"),
}
