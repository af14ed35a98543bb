from klat.ports.id_provider import IdProvider
import uuid

class UuidIdProvider(IdProvider):
    """Identyfikatory uuid4, opcjonalnie z prefiksem (np. 'note_', 'tag_')."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    def new_id(self):
        return f"{self.prefix}{uuid.uuid4()}"
