from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from gridfs.errors import NoFile

from image_api.adapters.storage import (
    GridFSBlobStorage,
    LocalBlobStorage,
    get_blob_storage,
)
from image_api.errors import BlobNotFoundError


class TestLocalBlobStorage:

    @pytest.fixture
    def storage(self, tmp_path):
        return LocalBlobStorage(tmp_path / "blobs", read_chunk_size=4)

    def test_put_then_open_yields_chunks(self, storage):
        file_id = storage.put(b"0123456789", filename="a.png", content_type="image/png")

        chunks = list(storage.open(file_id))

        assert isinstance(file_id, ObjectId)
        assert chunks == [b"0123", b"4567", b"89"]
        assert storage.exists(file_id)

    def test_delete(self, storage):
        file_id = storage.put(b"data", filename="a.png", content_type="image/png")

        storage.delete(file_id)

        assert not storage.exists(file_id)
        assert list(storage.storage_dir.iterdir()) == []

    def test_missing_blob_raises(self, storage):
        missing = ObjectId()
        with pytest.raises(BlobNotFoundError):
            storage.open(missing)
        with pytest.raises(BlobNotFoundError):
            storage.delete(missing)
        assert storage.exists(missing) is False


class TestGridFSBlobStorage:

    def test_put_records_content_type(self):
        bucket = MagicMock()
        file_id = ObjectId()
        bucket.upload_from_stream.return_value = file_id
        storage = GridFSBlobStorage(bucket)

        result = storage.put(b"data", filename="a.png", content_type="image/png", metadata={"title": "t"})

        assert result == file_id
        bucket.upload_from_stream.assert_called_once_with(
            "a.png", b"data", metadata={"contentType": "image/png", "title": "t"}
        )

    def test_open_reads_until_exhausted_and_closes(self):
        grid_out = MagicMock()
        grid_out.read.side_effect = [b"ab", b"cd", b""]
        bucket = MagicMock()
        bucket.open_download_stream.return_value = grid_out
        storage = GridFSBlobStorage(bucket, read_chunk_size=2)

        assert list(storage.open(ObjectId())) == [b"ab", b"cd"]
        grid_out.close.assert_called_once()

    def test_no_file_becomes_blob_not_found(self):
        bucket = MagicMock()
        bucket.open_download_stream.side_effect = NoFile("gone")
        bucket.delete.side_effect = NoFile("gone")
        storage = GridFSBlobStorage(bucket)

        with pytest.raises(BlobNotFoundError):
            storage.open(ObjectId())
        with pytest.raises(BlobNotFoundError):
            storage.delete(ObjectId())

    def test_exists(self):
        bucket = MagicMock()
        bucket.find.return_value.limit.return_value = iter([object()])
        assert GridFSBlobStorage(bucket).exists(ObjectId()) is True

        bucket.find.return_value.limit.return_value = iter([])
        assert GridFSBlobStorage(bucket).exists(ObjectId()) is False


def test_get_blob_storage_local(settings):
    storage = get_blob_storage(settings)
    assert isinstance(storage, LocalBlobStorage)
    assert str(storage.storage_dir) == settings.storage_dir


def test_get_blob_storage_gridfs(settings):
    gridfs_settings = settings.model_copy(update={"blob_backend": "gridfs", "gridfs_bucket_name": "pics"})
    adapter = MagicMock()

    storage = get_blob_storage(gridfs_settings, adapter)

    assert isinstance(storage, GridFSBlobStorage)
    adapter.gridfs_bucket.assert_called_once_with("pics")
