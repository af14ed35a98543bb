import pytest
from io import BytesIO
from datetime import date, datetime, timezone
from PIL import Image
from klat.adapters.memory.note_repo import InMemoryNoteRepository
from klat.adapters.storage.file_storage import FileImageStorage, InMemoryImageStorage
from klat.services.image_service import ImageService, optimize_image, sanitize_filename, MAX_FILE_SIZE
from klat.domain.note import Note, NoteId
from klat.domain.errors import (
    DomainError, NoteNotFoundError, ImageValidationError, ImageProcessingError, ImageAccessError,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        self.fixed = fixed or NOW
    def now(self) -> datetime:
        return self.fixed


def png_bytes(size=(3000, 1500), mode="RGB") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color=0).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def notes():
    return InMemoryNoteRepository([Note(note_id=NoteId("n1"), date=date(2025, 1, 1), created_at=NOW)])


@pytest.fixture
def storage():
    return InMemoryImageStorage()


@pytest.fixture
def service(notes, storage):
    return ImageService(notes, storage, FakeClock())


def test_optimize_downscales_to_webp():
    data = optimize_image(png_bytes())
    with Image.open(BytesIO(data)) as img:
        assert img.format == "WEBP"
        assert img.width <= 1920 and img.height <= 1080
        assert img.size == (1920, 960)


def test_optimize_never_upscales():
    with Image.open(BytesIO(optimize_image(png_bytes((200, 100))))) as img:
        assert img.size == (200, 100)


def test_optimize_converts_palette_images():
    with Image.open(BytesIO(optimize_image(png_bytes((50, 50), mode="P")))) as img:
        assert img.format == "WEBP"


def test_optimize_rejects_garbage():
    with pytest.raises(ImageProcessingError):
        optimize_image(b"definitely not an image")


def test_optimize_rejects_decompression_bomb(monkeypatch):
    # 100x100 to ponad dwukrotność limitu, więc Pillow rzuca DecompressionBombError
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    with pytest.raises(ImageProcessingError):
        optimize_image(png_bytes((100, 100)))


def test_upload_of_decompression_bomb_is_processing_error(service, notes, storage, monkeypatch):
    data = png_bytes((100, 100))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(ImageProcessingError):
        service.upload(NoteId("n1"), "bomb.png", data, "image/png")
    assert storage.objects == {}
    assert notes.get(NoteId("n1")).images == ()


def test_sanitize_filename():
    assert sanitize_filename("moje zdjęcie (1).png") == "moje_zdj_cie__1_.png"
    assert len(sanitize_filename("a" * 300)) == 100


def test_upload_stores_webp_and_links_note(service, notes, storage):
    path = service.upload(NoteId("n1"), "Wakacje nad morzem.PNG", png_bytes(), "image/png")

    assert path == f"n1/{NOW_MS}-Wakacje_nad_morzem.webp"
    data, content_type = storage.objects[path]
    assert content_type == "image/webp"
    assert notes.get(NoteId("n1")).images == (path,)
    assert notes.get(NoteId("n1")).updated_at == NOW
    assert service.url_for(path) == f"memory://{path}"


def test_upload_to_missing_note_raises(service, storage):
    with pytest.raises(NoteNotFoundError):
        service.upload(NoteId("nope"), "a.png", png_bytes(), "image/png")
    assert storage.objects == {}


def test_upload_rejects_wrong_mime_type(service):
    with pytest.raises(ImageValidationError):
        service.upload(NoteId("n1"), "a.svg", b"<svg/>", "image/svg+xml")


def test_upload_rejects_oversized_file(service):
    with pytest.raises(ImageValidationError):
        service.upload(NoteId("n1"), "big.png", b"\0" * (MAX_FILE_SIZE + 1), "image/png")


def test_delete_image(service, notes, storage):
    path = service.upload(NoteId("n1"), "a.png", png_bytes((10, 10)), "image/png")

    service.delete(NoteId("n1"), path)

    assert storage.objects == {}
    assert notes.get(NoteId("n1")).images == ()


def test_delete_foreign_path_raises(service, storage):
    storage.put("n2/1-a.webp", b"x", "image/webp")
    with pytest.raises(ImageAccessError):
        service.delete(NoteId("n1"), "n2/1-a.webp")
    assert "n2/1-a.webp" in storage.objects


def test_file_storage_roundtrip(tmp_path):
    storage = FileImageStorage(tmp_path / "images")

    storage.put("n1/1-a.webp", b"abc", "image/webp")
    storage.put("n1/2-b.webp", b"def", "image/webp")

    assert storage.list("n1") == ["n1/1-a.webp", "n1/2-b.webp"]
    assert (tmp_path / "images" / "n1" / "1-a.webp").read_bytes() == b"abc"
    assert storage.url_for("n1/1-a.webp").startswith("file://")
    assert storage.list("missing") == []

    with pytest.raises(DomainError):
        storage.put("n1/1-a.webp", b"again", "image/webp")

    storage.delete(["n1/1-a.webp", "n1/does-not-exist.webp"])
    assert storage.list("n1") == ["n1/2-b.webp"]


def test_file_storage_rejects_paths_outside_root(tmp_path):
    storage = FileImageStorage(tmp_path / "images")
    with pytest.raises(DomainError):
        storage.put("../escape.webp", b"x", "image/webp")


def test_delete_note_images_with_file_storage(tmp_path, notes):
    storage = FileImageStorage(tmp_path / "images")
    service = ImageService(notes, storage, FakeClock())
    service.upload(NoteId("n1"), "a.png", png_bytes((10, 10)), "image/png")

    service.delete_note_images(NoteId("n1"))

    assert storage.list("n1") == []
