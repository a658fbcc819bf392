"""Database fixtures for tests: settings pointed at a test database and a mongomock-backed adapter."""
import mongomock
import pytest

from database.mongo_adapter import MongoAdapter
from image_api.config.settings import Settings

TEST_DATABASE = "image_api_test"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        mongodb_uri=f"mongodb://localhost:27017/{TEST_DATABASE}",
        blob_backend="local",
        storage_dir=str(tmp_path / "blobs"),
    )


@pytest.fixture
def mongo_adapter() -> MongoAdapter:
    adapter = MongoAdapter(client=mongomock.MongoClient(), database_name=TEST_DATABASE)
    adapter.init_collections()
    return adapter
