import logging

from supabase import Client, create_client

from ...domain.errors import BlobStorageError
from ...domain.ports.storage import BlobStorage

logger = logging.getLogger(__name__)


class SupabaseBlobStorage(BlobStorage):
    """Supabase Storage bucket holding product images.

    The bucket must be public for the returned URLs to be readable.
    """

    def __init__(self, url: str, key: str, bucket: str) -> None:
        self._client: Client = create_client(url, key)
        self._bucket = bucket

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self._client.storage.from_(self._bucket)
        try:
            bucket.upload(path, data, {"content-type": content_type, "upsert": "false"})
        except Exception as exc:  # storage3 error types vary between releases
            raise BlobStorageError(f"Unable to upload {path}.", path=path) from exc
        logger.info("Uploaded %s to bucket %s (%d bytes)", path, self._bucket, len(data))
        return bucket.get_public_url(path)

    def delete(self, path: str) -> None:
        try:
            removed = self._client.storage.from_(self._bucket).remove([path])
        except Exception as exc:  # storage3 error types vary between releases
            raise BlobStorageError(f"Unable to delete {path}.", path=path) from exc
        if not removed:
            raise BlobStorageError(f"Blob {path} does not exist.", path=path)
        logger.info("Deleted %s from bucket %s", path, self._bucket)
