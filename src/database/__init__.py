"""
Document store layer.

MongoDB access for image metadata and the GridFS buckets holding image content.
"""

from .mongo_adapter import MongoAdapter
from .local import get_mongo_adapter, close_mongo_adapter, init_db

__all__ = ['MongoAdapter', 'get_mongo_adapter', 'close_mongo_adapter', 'init_db']
