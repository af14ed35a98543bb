from typing import Protocol


class ImageStorage(Protocol):
    """Magazyn obiektów dla załączników graficznych.

    Ścieżki są względne i mają postać `{note_id}/{plik}.webp`.
    Adaptery mapują błędy I/O na `DomainError`.
    """

    def put(self, path: str, data: bytes, content_type: str) -> None:
        """Zapisuje obiekt. Istniejąca ścieżka nie jest nadpisywana (`DomainError`)."""

    def delete(self, paths: list[str]) -> None:
        """Usuwa obiekty; brakujące ścieżki są pomijane."""

    def list(self, prefix: str) -> list[str]:
        """Zwraca ścieżki obiektów w "katalogu" `prefix` (posortowane)."""

    def url_for(self, path: str) -> str:
        """Publiczny adres obiektu (dla adaptera plikowego: URI `file://`)."""
