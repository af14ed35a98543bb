import os
import logging
from pathlib import Path
from klat.domain.errors import DomainError

logger = logging.getLogger(__name__)


class FileImageStorage:
    """Magazyn obrazów w katalogu lokalnym; ścieżki obiektów są względne do `root`."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise DomainError(f"Ścieżka poza magazynem: {path}")
        return target

    def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        if target.exists():
            raise DomainError(f"Obiekt {path} juz istnieje.")
        tmp = target.with_suffix(target.suffix + ".swap")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as e:
            try:
                if tmp.exists():
                    tmp.unlink()
            except OSError:
                pass
            raise DomainError(str(e))
        logger.debug("Stored %s (%d bytes, %s)", path, len(data), content_type)

    def delete(self, paths: list[str]) -> None:
        for path in paths:
            try:
                self._resolve(path).unlink(missing_ok=True)
            except OSError as e:
                raise DomainError(str(e))

    def list(self, prefix: str) -> list[str]:
        folder = self._resolve(prefix)
        if not folder.is_dir():
            return []
        return sorted(
            f"{prefix.rstrip('/')}/{p.name}"
            for p in folder.iterdir()
            if p.is_file() and not p.name.endswith(".swap")
        )

    def url_for(self, path: str) -> str:
        return self._resolve(path).as_uri()


class InMemoryImageStorage:
    """Magazyn obrazów w słowniku — do testów."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}

    def put(self, path: str, data: bytes, content_type: str) -> None:
        if path in self.objects:
            raise DomainError(f"Obiekt {path} juz istnieje.")
        self.objects[path] = (data, content_type)

    def delete(self, paths: list[str]) -> None:
        for path in paths:
            self.objects.pop(path, None)

    def list(self, prefix: str) -> list[str]:
        folder = prefix.rstrip("/") + "/"
        return sorted(p for p in self.objects if p.startswith(folder))

    def url_for(self, path: str) -> str:
        return f"memory://{path}"
