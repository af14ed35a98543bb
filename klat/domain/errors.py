

### COMMENTS
# ============================================
# Konwencja użycia błędów domenowych w projekcie
# ============================================
# - Repozytoria (adaptery):
#     * wykrywają duplikaty lub brak rekordów
#     * mapują błędy techniczne (IntegrityError, OSError) na DomainError
#
# - Serwisy:
#     * walidują dane użytkownika i rzucają NoteValidationError / TagValidationError
#     * jeśli get() zwraca None, a operacja wymaga istniejącego rekordu — *NotFoundError
#
# - Ranking notatek (domain/priority.py) nie rzuca niczego — zła data to fallback, nie błąd.
#
# - UI (CLI):
#     * łapie DomainError (lub konkretne klasy) i wyświetla przyjazny komunikat
#     * wszystko inne traktuje jako błąd techniczny


class DomainError(Exception):
    """Bazowa klasa dla błędów domenowych.
    Umożliwia odróżnienie błędów domeny (logika aplikacji) od błędów technicznych
    (np. problemów z bazą danych, I/O).
    Nie powinna być rzucana bezpośrednio — używaj klas pochodnych.
    """


class NoteAlreadyExistsError(DomainError):
    """Rzucany przez adaptery `NoteRepository.add()` przy kolizji `note_id`."""
    def __init__(self, note_id: str):
        self.note_id = note_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Notatka o ID {self.note_id} juz istnieje."


class NoteNotFoundError(DomainError):
    """Rzucany, gdy żądana notatka nie istnieje w repozytorium.
    Zgłaszany przez adaptery (update/remove) lub przez serwis, jeśli `get()` zwraca `None`.
    """
    def __init__(self, note_id: str):
        self.note_id = note_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Notatka o ID {self.note_id} nie istnieje."


class NoteValidationError(DomainError):
    """Rzucany, gdy dane wejściowe nie spełniają reguł biznesowych.

    Zawiera czytelny komunikat (`message`) oraz nazwę pola (`field`),
    którego dotyczy błąd, co ułatwia prezentację w UI.
    """
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(self.__str__())
    def __str__(self):
        return f"Błąd walidacji pola '{self.field}': {self.message}"


class TagValidationError(NoteValidationError):
    """Błąd walidacji nazwy lub koloru tagu."""


class TagNotFoundError(DomainError):
    def __init__(self, tag_id: str):
        self.tag_id = tag_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Tag o ID {self.tag_id} nie istnieje."


class TagAlreadyExistsError(DomainError):
    """Tag o tej samej nazwie (lub ID) już istnieje."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(self.__str__())
    def __str__(self):
        return f"Tag '{self.name}' juz istnieje."


class TagInUseError(DomainError):
    """Tagu nie można usunąć, dopóki używa go choć jedna notatka."""
    def __init__(self, tag_id: str, note_count: int):
        self.tag_id = tag_id
        self.note_count = note_count
        super().__init__(self.__str__())
    def __str__(self):
        return (
            f"Tag {self.tag_id} jest używany przez {self.note_count} notatk(i). "
            "Najpierw usuń go ze wszystkich notatek."
        )


class ImageValidationError(DomainError):
    """Niedozwolony typ MIME albo zbyt duży plik."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ImageProcessingError(DomainError):
    """Pillow nie potrafił zdekodować / przekonwertować obrazu."""
    def __init__(self, message: str = "Przetwarzanie obrazu nie powiodło się"):
        self.message = message
        super().__init__(message)


class ImageAccessError(DomainError):
    """Ścieżka obrazu nie należy do wskazanej notatki."""
    def __init__(self, path: str, note_id: str):
        self.path = path
        self.note_id = note_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Obraz {self.path} nie należy do notatki {self.note_id}."


class ConfigError(DomainError):
    """Niepoprawna wartość w konfiguracji (plik YAML, zmienne środowiskowe, opcje CLI)."""
