import logging
from typing import Optional

from .mongo_adapter import MongoAdapter

logger = logging.getLogger(__name__)

# Global adapter instance
_mongo_adapter: Optional[MongoAdapter] = None


def get_mongo_adapter(settings=None) -> MongoAdapter:
    """Return the process-wide adapter, connecting on first use."""
    global _mongo_adapter

    if _mongo_adapter is None:
        if settings is None:
            from image_api.config.settings import get_settings
            settings = get_settings()
        _mongo_adapter = MongoAdapter(
            connection_string=settings.mongodb_uri,
            database_name=settings.database_name,
            images_collection=settings.images_collection,
        )
    return _mongo_adapter


def close_mongo_adapter() -> None:
    """Close and forget the process-wide adapter."""
    global _mongo_adapter

    if _mongo_adapter is not None:
        _mongo_adapter.close()
        _mongo_adapter = None


def init_db(adapter: Optional[MongoAdapter] = None) -> None:
    """Initialize collections and indexes."""
    adapter = adapter or get_mongo_adapter()
    adapter.init_collections()
    logger.info("Database initialized")
