"""
MongoDB adapter for image metadata documents.
Owns the client connection and hands out GridFS buckets on the same database.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

from bson import ObjectId
from gridfs import GridFSBucket
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

from .schemas import DOCUMENT_VALIDATORS

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "image_store"


class MongoAdapter:
    """MongoDB adapter for image metadata operations"""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        client: Optional[MongoClient] = None,
        database_name: Optional[str] = None,
        images_collection: str = "images",
    ):
        if client is None and not connection_string:
            raise ValueError("MongoDB connection string required. Set MONGODB_URI environment variable or pass connection_string")

        self.connection_string = connection_string
        self.client = client
        self.images_collection = images_collection
        self._owns_client = client is None
        self.db = None
        self._connect(database_name)

    def _connect(self, database_name: Optional[str]) -> None:
        """Establish MongoDB connection"""
        try:
            if self.client is None:
                self.client = MongoClient(self.connection_string)

            db_name = database_name or DEFAULT_DATABASE_NAME
            self.db = self.client[db_name]

            if self._owns_client:
                # Test connection
                self.client.admin.command('ping')
            logger.info(f"Connected to MongoDB database: {db_name}")

        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    @property
    def images(self):
        return self.db[self.images_collection]

    def _validate_document(self, collection: str, document: Dict[str, Any]) -> None:
        """Validate document against schema"""
        if collection in DOCUMENT_VALIDATORS:
            try:
                DOCUMENT_VALIDATORS[collection](document)
            except Exception as e:
                logger.error(f"Document validation failed for {collection}: {e}")
                raise ValueError(f"Document validation failed: {e}")

    def init_collections(self) -> None:
        """Initialize MongoDB indexes for the images collection"""
        try:
            self.images.create_index([("file_id", ASCENDING)], unique=True)
            self.images.create_index([("upload_date", DESCENDING)])
            logger.info("MongoDB collections and indexes initialized successfully")
        except PyMongoError as e:
            logger.error(f"Error initializing MongoDB collections: {e}")
            raise

    def gridfs_bucket(self, bucket_name: str) -> GridFSBucket:
        """GridFS bucket living in the same database as the metadata."""
        return GridFSBucket(self.db, bucket_name=bucket_name)

    def insert_image(self, document: Dict[str, Any]) -> ObjectId:
        """Insert an image document, returning its generated `_id`"""
        self._validate_document('images', document)
        try:
            result = self.images.insert_one(document)
            logger.info(f"Created image document {result.inserted_id} for file {document['file_id']}")
            return result.inserted_id
        except PyMongoError as e:
            logger.error(f"Error creating image document: {e}")
            raise

    def find_image_by_file_id(self, file_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Get an image document by the id of its blob"""
        try:
            return self.images.find_one({"file_id": file_id})
        except PyMongoError as e:
            logger.error(f"Error getting image document for file {file_id}: {e}")
            raise

    def find_images(
        self,
        query: Dict[str, Any],
        sort: List[Tuple[str, int]],
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Query image documents with filters, sort order and a limit"""
        try:
            cursor = self.images.find(query).sort(sort).limit(limit)
            return list(cursor)
        except PyMongoError as e:
            logger.error(f"Error querying image documents: {e}")
            raise

    def count_images(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Count image documents matching query"""
        return self.images.count_documents(query or {})

    def delete_image_by_file_id(self, file_id: ObjectId) -> bool:
        """Delete an image document by the id of its blob"""
        try:
            result = self.images.delete_one({"file_id": file_id})
            success = result.deleted_count > 0

            if success:
                logger.info(f"Deleted image document for file {file_id}")
            else:
                logger.warning(f"No image document found to delete for file {file_id}")

            return success
        except PyMongoError as e:
            logger.error(f"Error deleting image document for file {file_id}: {e}")
            raise

    def ping(self) -> bool:
        """Round-trip to the server; raises when it is unreachable"""
        self.db.command('ping')
        return True

    def close(self) -> None:
        """Close MongoDB connection"""
        if self.client and self._owns_client:
            self.client.close()
            logger.info("MongoDB connection closed")
