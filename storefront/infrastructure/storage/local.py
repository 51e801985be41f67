import logging
from pathlib import Path

from ...domain.errors import BlobStorageError
from ...domain.ports.storage import BlobStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Stores blobs under a directory that the app serves at ``base_url``."""

    def __init__(self, root: Path, base_url: str) -> None:
        root.mkdir(parents=True, exist_ok=True)
        self._root = root.resolve()
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStorageError(f"Unable to store {path}.", path=path) from exc
        logger.info("Stored %s (%d bytes, %s)", path, len(data), content_type)
        return f"{self._base_url}/{path}"

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError as exc:
            raise BlobStorageError(f"Blob {path} does not exist.", path=path) from exc
        except OSError as exc:
            raise BlobStorageError(f"Unable to delete {path}.", path=path) from exc
        logger.info("Deleted %s", path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if self._root not in target.parents:
            raise BlobStorageError(f"Blob path {path!r} escapes the media root.", path=path)
        return target
