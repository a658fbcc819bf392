"""
Unit tests for ImageService.
Exercises pagination, search composition and the blob/metadata pairing directly.
"""

import pytest
from bson import ObjectId

from image_api.db_layer.image_service import build_list_query, parse_object_id
from image_api.errors import (
    ImageNotFoundError,
    InvalidCursorError,
    InvalidImageError,
)
from tests.fixtures.images import make_image_bytes

PNG = make_image_bytes("PNG", size=(3, 2))


def add_image(image_service, title="title", description="description"):
    return image_service.upload_image(
        PNG,
        filename="img.png",
        declared_content_type="image/png",
        title=title,
        description=description,
    )


class TestListImages:

    def test_pages_walk_every_image_once(self, image_service):
        created = [add_image(image_service, title=f"t{i}") for i in range(7)]

        seen = []
        cursor = None
        while True:
            page = image_service.list_images(cursor=cursor, limit=3)
            seen.extend(doc["_id"] for doc in page.images)
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = page.next_cursor

        assert seen == [doc["_id"] for doc in reversed(created)]

    def test_exact_multiple_of_limit_has_no_extra_page(self, image_service):
        for i in range(4):
            add_image(image_service, title=f"t{i}")

        page = image_service.list_images(limit=4)

        assert len(page.images) == 4
        assert page.has_more is False
        assert page.next_cursor is None

    def test_malformed_cursor_raises(self, image_service):
        with pytest.raises(InvalidCursorError):
            image_service.list_images(cursor="zzz", limit=10)

    def test_search_is_literal_and_case_insensitive(self, image_service):
        add_image(image_service, title="a.c")
        add_image(image_service, title="abc")
        add_image(image_service, title="other", description="Contains A.C too")

        page = image_service.list_images(limit=10, search="a.c")

        assert sorted(doc["title"] for doc in page.images) == ["a.c", "other"]

    def test_search_combines_with_cursor(self, image_service):
        for i in range(5):
            add_image(image_service, title=f"cat {i}")
        add_image(image_service, title="dog")

        first = image_service.list_images(limit=2, search="cat")
        second = image_service.list_images(cursor=first.next_cursor, limit=10, search="cat")

        assert [doc["title"] for doc in first.images] == ["cat 4", "cat 3"]
        assert [doc["title"] for doc in second.images] == ["cat 2", "cat 1", "cat 0"]


class TestBuildListQuery:

    def test_empty(self):
        assert build_list_query(None, None) == {}

    def test_cursor_and_search(self):
        cursor = ObjectId()
        query = build_list_query(cursor, "x+y")
        assert query["_id"] == {"$lt": cursor}
        assert query["$or"] == [
            {"title": {"$regex": r"x\+y", "$options": "i"}},
            {"description": {"$regex": r"x\+y", "$options": "i"}},
        ]


class TestUploadImage:

    def test_stores_blob_and_metadata(self, image_service, blob_storage, mongo_adapter):
        document = add_image(image_service)

        assert blob_storage.exists(document["file_id"])
        stored = mongo_adapter.find_image_by_file_id(document["file_id"])
        assert stored["_id"] == document["_id"]
        assert stored["size"] == len(PNG)
        assert (stored["width"], stored["height"]) == (3, 2)

    def test_invalid_image_stores_nothing(self, image_service, mongo_adapter, blob_storage):
        with pytest.raises(InvalidImageError):
            image_service.upload_image(
                b"GIF89a not really",
                filename="x.gif",
                declared_content_type="image/gif",
                title="t",
                description="d",
            )
        assert mongo_adapter.count_images() == 0
        assert list(blob_storage.storage_dir.iterdir()) == []

    def test_metadata_failure_removes_blob(self, image_service, mongo_adapter, blob_storage, monkeypatch):
        def fail_insert(document):
            raise RuntimeError("write concern failed")

        monkeypatch.setattr(mongo_adapter, "insert_image", fail_insert)

        with pytest.raises(RuntimeError):
            add_image(image_service)

        assert [p for p in blob_storage.storage_dir.iterdir() if not p.name.endswith(".json")] == []

    def test_validate_image_file(self, image_service):
        assert image_service.validate_image_file(PNG) is True
        assert image_service.validate_image_file(b"nope") is False


class TestStreamAndDelete:

    def test_open_image_stream(self, image_service):
        document = add_image(image_service)

        stored, stream = image_service.open_image_stream(str(document["file_id"]))

        assert stored["_id"] == document["_id"]
        assert b"".join(stream) == PNG

    def test_open_missing_blob_is_not_found(self, image_service, blob_storage):
        document = add_image(image_service)
        blob_storage.delete(document["file_id"])

        with pytest.raises(ImageNotFoundError):
            image_service.open_image_stream(str(document["file_id"]))

    def test_delete_removes_blob_and_metadata(self, image_service, blob_storage, mongo_adapter):
        document = add_image(image_service)

        image_service.delete_image(str(document["file_id"]))

        assert not blob_storage.exists(document["file_id"])
        assert mongo_adapter.count_images() == 0

    def test_delete_tolerates_missing_blob(self, image_service, blob_storage, mongo_adapter):
        document = add_image(image_service)
        blob_storage.delete(document["file_id"])

        image_service.delete_image(str(document["file_id"]))

        assert mongo_adapter.count_images() == 0

    def test_delete_unknown_raises(self, image_service):
        with pytest.raises(ImageNotFoundError):
            image_service.delete_image(str(ObjectId()))


def test_parse_object_id():
    oid = ObjectId()
    assert parse_object_id(str(oid)) == oid
    assert parse_object_id(oid) is oid
    assert parse_object_id("") is None
    assert parse_object_id(None) is None
    assert parse_object_id("g" * 24) is None
