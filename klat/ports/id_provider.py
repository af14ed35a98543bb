from typing import Protocol

class IdProvider(Protocol):
    """Port odpowiedzialny za generowanie unikalnych identyfikatorów notatek i tagów."""
    def new_id(self) -> str:
        pass
