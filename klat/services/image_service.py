import re
import logging
from io import BytesIO
from dataclasses import replace
from PIL import Image, UnidentifiedImageError
from klat.ports.image_storage import ImageStorage
from klat.ports.note_repository import NoteRepository
from klat.ports.clock import Clock
from klat.domain.note import Note, NoteId
from klat.domain.errors import (
    NoteNotFoundError, ImageValidationError, ImageProcessingError, ImageAccessError, DomainError,
)

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_SIZE = (1920, 1080)
WEBP_QUALITY = 85


def sanitize_filename(filename: str) -> str:
    """Zostawia tylko [A-Za-z0-9._-], maksymalnie 100 znaków."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", filename)[:100]


def optimize_image(data: bytes) -> bytes:
    """Zmniejsza obraz do 1920x1080 (bez powiększania) i koduje jako WebP.

    :raises ImageProcessingError: Gdy Pillow nie potrafi odczytać danych.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.thumbnail(MAX_SIZE)
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "transparency" in img.info or "A" in img.mode else "RGB")
            buffer = BytesIO()
            img.save(buffer, format="WEBP", quality=WEBP_QUALITY, method=4)
            return buffer.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Image processing failed: %s", e)
        raise ImageProcessingError()


class ImageService:
    """
    Załączniki graficzne notatek.

    :param notes: Repozytorium notatek (lista `images` w notatce).
    :param storage: Magazyn obiektów.
    :param clock: Znacznik czasu w nazwie pliku.
    """
    def __init__(self, notes: NoteRepository, storage: ImageStorage, clock: Clock) -> None:
        self.notes = notes
        self.storage = storage
        self.clock = clock

    def _note(self, note_id: NoteId) -> Note:
        note = self.notes.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    def validate(self, data: bytes, mime_type: str) -> None:
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ImageValidationError(
                f"Niedozwolony typ pliku. Dozwolone: {', '.join(ALLOWED_MIME_TYPES)}"
            )
        if len(data) > MAX_FILE_SIZE:
            raise ImageValidationError(
                f"Plik jest za duży. Maksymalny rozmiar: {MAX_FILE_SIZE // (1024 * 1024)}MB"
            )

    def build_path(self, note_id: NoteId, filename: str) -> str:
        """`{note_id}/{timestamp_ms}-{nazwa}.webp`"""
        stem = re.sub(r"\.[^/.]+$", "", sanitize_filename(filename)) or "image"
        timestamp = int(self.clock.now().timestamp() * 1000)
        return f"{note_id}/{timestamp}-{stem}.webp"

    def upload(self, note_id: NoteId, filename: str, data: bytes, mime_type: str) -> str:
        """
            Waliduje, optymalizuje i zapisuje obraz, a jego ścieżkę dopisuje do notatki.

            :raises NoteNotFoundError: Gdy notatka nie istnieje.
            :raises ImageValidationError: Zły typ MIME albo plik > 5MB.
            :raises ImageProcessingError: Nie udało się zdekodować obrazu.
            :return: Ścieżka zapisanego obiektu.
        """
        note = self._note(note_id)
        self.validate(data, mime_type)
        optimized = optimize_image(data)
        path = self.build_path(note_id, filename)

        self.storage.put(path, optimized, "image/webp")
        self.notes.update(replace(note, images=note.images + (path,), updated_at=self.clock.now()))
        logger.info("Attached image %s (%d -> %d bytes)", path, len(data), len(optimized))
        return path

    def url_for(self, path: str) -> str:
        return self.storage.url_for(path)

    def delete(self, note_id: NoteId, path: str) -> None:
        """
            Usuwa pojedynczy obraz notatki.

            :raises ImageAccessError: Gdy ścieżka nie leży w katalogu notatki.
        """
        if not path.startswith(f"{note_id}/"):
            raise ImageAccessError(path, note_id)
        note = self._note(note_id)
        self.storage.delete([path])
        if path in note.images:
            images = tuple(p for p in note.images if p != path)
            self.notes.update(replace(note, images=images, updated_at=self.clock.now()))

    def delete_note_images(self, note_id: NoteId) -> None:
        """Usuwa wszystkie obrazy notatki. Best effort: błąd jest tylko logowany."""
        try:
            paths = self.storage.list(str(note_id))
            if paths:
                self.storage.delete(paths)
        except DomainError:
            logger.exception("Failed to delete images of note %s", note_id)
