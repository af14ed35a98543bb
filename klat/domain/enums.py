from enum import Enum, IntEnum

class Importance(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    def __str__(self):
        return self.value


class NoteStatus(str, Enum):
    """Kolumna tablicy kanban; wyliczana z `completed_at` i `in_progress`."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    def __str__(self):
        return self.value


class UrgencyBucket(IntEnum):
    """Koszyki pilności terminu. Niższa wartość = wyżej na liście."""
    OVERDUE = 1
    TODAY = 2
    TOMORROW = 3
    THIS_WEEK = 4
    NO_DEADLINE = 5
    LATER = 6
