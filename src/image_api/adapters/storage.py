"""
Blob storage for image content.

GridFS is the production backend; the local backend keeps blobs on disk for
development and tests. Both key blobs by ObjectId.
"""

import json
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from bson import ObjectId
from gridfs import GridFSBucket
from gridfs.errors import NoFile

from image_api.errors import BlobNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_READ_CHUNK_SIZE = 255 * 1024  # GridFS default chunk size


class BlobStorage(ABC):
    """Interface shared by the blob backends."""

    @abstractmethod
    def put(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ObjectId:
        """Store `data` and return the id of the new blob."""

    @abstractmethod
    def open(self, file_id: ObjectId) -> Iterator[bytes]:
        """Iterate over the blob's bytes, raising BlobNotFoundError when absent."""

    @abstractmethod
    def delete(self, file_id: ObjectId) -> None:
        """Delete the blob, raising BlobNotFoundError when absent."""

    @abstractmethod
    def exists(self, file_id: ObjectId) -> bool:
        ...


class GridFSBlobStorage(BlobStorage):
    """Blobs stored as chunked files in a GridFS bucket."""

    def __init__(self, bucket: GridFSBucket, read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE):
        self.bucket = bucket
        self.read_chunk_size = read_chunk_size

    def put(self, data, filename, content_type, metadata=None):
        file_metadata = {"contentType": content_type, **(metadata or {})}
        file_id = self.bucket.upload_from_stream(filename, data, metadata=file_metadata)
        logger.info(f"Uploaded {filename} ({len(data)} bytes) to GridFS as {file_id}")
        return file_id

    def open(self, file_id):
        try:
            grid_out = self.bucket.open_download_stream(file_id)
        except NoFile as e:
            raise BlobNotFoundError(f"No blob with id {file_id}") from e
        return self._iter_chunks(grid_out)

    def _iter_chunks(self, grid_out) -> Iterator[bytes]:
        try:
            while True:
                chunk = grid_out.read(self.read_chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            grid_out.close()

    def delete(self, file_id):
        try:
            self.bucket.delete(file_id)
        except NoFile as e:
            raise BlobNotFoundError(f"No blob with id {file_id}") from e
        logger.info(f"Deleted GridFS file {file_id}")

    def exists(self, file_id):
        for _ in self.bucket.find({"_id": file_id}).limit(1):
            return True
        return False


class LocalBlobStorage(BlobStorage):
    """Blobs stored as files under a directory, with a JSON sidecar for metadata."""

    def __init__(self, storage_dir: str | Path, read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.read_chunk_size = read_chunk_size

    def _blob_path(self, file_id: ObjectId) -> Path:
        return self.storage_dir / str(file_id)

    def _metadata_path(self, file_id: ObjectId) -> Path:
        return self.storage_dir / f"{file_id}.json"

    def put(self, data, filename, content_type, metadata=None):
        file_id = ObjectId()
        tmp_path = self.storage_dir / f".{file_id}.tmp"
        tmp_path.write_bytes(data)
        shutil.move(str(tmp_path), str(self._blob_path(file_id)))
        self._metadata_path(file_id).write_text(json.dumps({
            "filename": filename,
            "length": len(data),
            "metadata": {"contentType": content_type, **(metadata or {})},
        }, default=str))
        logger.info(f"Stored {filename} ({len(data)} bytes) at {self._blob_path(file_id)}")
        return file_id

    def open(self, file_id):
        path = self._blob_path(file_id)
        if not path.is_file():
            raise BlobNotFoundError(f"No blob with id {file_id}")
        return self._iter_chunks(path)

    def _iter_chunks(self, path: Path) -> Iterator[bytes]:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(self.read_chunk_size)
                if not chunk:
                    break
                yield chunk

    def delete(self, file_id):
        path = self._blob_path(file_id)
        if not path.is_file():
            raise BlobNotFoundError(f"No blob with id {file_id}")
        path.unlink()
        self._metadata_path(file_id).unlink(missing_ok=True)
        logger.info(f"Deleted local blob {file_id}")

    def exists(self, file_id):
        return self._blob_path(file_id).is_file()


def get_blob_storage(settings, adapter=None) -> BlobStorage:
    """Build the blob backend selected by `settings.blob_backend`."""
    if settings.blob_backend == "gridfs":
        if adapter is None:
            from database.local import get_mongo_adapter
            adapter = get_mongo_adapter(settings)
        logger.info(f"Using GridFS bucket: {settings.gridfs_bucket_name}")
        return GridFSBlobStorage(adapter.gridfs_bucket(settings.gridfs_bucket_name))

    logger.info(f"Using local blob storage at: {settings.storage_dir}")
    return LocalBlobStorage(settings.storage_dir)
