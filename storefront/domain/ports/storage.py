from __future__ import annotations

from typing import Protocol


class BlobStorage(Protocol):
    """Object store holding product images."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its public URL."""
        ...

    def delete(self, path: str) -> None:
        ...
