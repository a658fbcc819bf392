"""
Image service for Image API operations.
Pairs blob storage for image content with metadata documents in MongoDB.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING

from database.mongo_adapter import MongoAdapter
from database.schemas import ImageDocumentSchema
from image_api.adapters.storage import BlobStorage
from image_api.errors import (
    BlobNotFoundError,
    ImageNotFoundError,
    InvalidCursorError,
    InvalidImageError,
)
from image_api.utils.decorators import log_execution_time
from image_api.utils.image_format import sniff_image

logger = logging.getLogger(__name__)


@dataclass
class ImagePage:
    images: List[Dict[str, Any]]
    next_cursor: Optional[str]
    has_more: bool


def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """ObjectId for a 24-char hex string, None for anything else."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def build_list_query(cursor: Optional[ObjectId], search: Optional[str]) -> Dict[str, Any]:
    """Compose the filter for one page: everything older than the cursor, matching the search."""
    query: Dict[str, Any] = {}
    if cursor is not None:
        query["_id"] = {"$lt": cursor}
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    return query


class ImageService:
    """Service for storing, listing, streaming and deleting images"""

    def __init__(self, adapter: MongoAdapter, storage: BlobStorage):
        self.adapter = adapter
        self.storage = storage

    @log_execution_time
    def list_images(
        self,
        cursor: Optional[str] = None,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> ImagePage:
        """Newest-first page of image documents, continuing after `cursor`"""
        cursor_id = None
        if cursor:
            cursor_id = parse_object_id(cursor)
            if cursor_id is None:
                raise InvalidCursorError()

        query = build_list_query(cursor_id, search)
        # One extra document tells us whether another page exists
        documents = self.adapter.find_images(query, sort=[("_id", DESCENDING)], limit=limit + 1)

        has_more = len(documents) > limit
        if has_more:
            documents = documents[:limit]

        next_cursor = str(documents[-1]["_id"]) if has_more and documents else None
        return ImagePage(images=documents, next_cursor=next_cursor, has_more=has_more)

    def validate_image_file(self, data: bytes) -> bool:
        return sniff_image(data) is not None

    @log_execution_time
    def upload_image(
        self,
        data: bytes,
        filename: str,
        declared_content_type: Optional[str],
        title: str,
        description: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Store an image and its metadata, returning the created document"""
        info = sniff_image(data)
        if info is None:
            raise InvalidImageError()

        if declared_content_type and declared_content_type != info.content_type:
            logger.info(
                f"{filename} declared as {declared_content_type} but contains {info.content_type}"
            )

        width = width or info.width
        height = height or info.height
        filename = filename or f"upload.{info.format}"

        file_id = self.storage.put(
            data,
            filename=filename,
            content_type=info.content_type,
            metadata={"title": title, "description": description, "width": width, "height": height},
        )

        try:
            document = ImageDocumentSchema(
                title=title,
                description=description,
                filename=filename,
                size=len(data),
                content_type=info.content_type,
                file_id=file_id,
                upload_date=datetime.now(timezone.utc),
                width=width,
                height=height,
            ).model_dump()
            document["_id"] = self.adapter.insert_image(document)
        except Exception:
            logger.error(f"Metadata write failed for blob {file_id}; removing blob")
            try:
                self.storage.delete(file_id)
            except BlobNotFoundError:
                pass
            raise

        return document

    def get_image_document(self, file_id: str) -> Optional[Dict[str, Any]]:
        """Metadata document for a blob id, or None for unknown or malformed ids"""
        object_id = parse_object_id(file_id)
        if object_id is None:
            return None
        return self.adapter.find_image_by_file_id(object_id)

    def open_image_stream(self, file_id: str) -> Tuple[Dict[str, Any], Iterator[bytes]]:
        """Metadata document plus an iterator over the image bytes"""
        document = self.get_image_document(file_id)
        if document is None:
            raise ImageNotFoundError()
        try:
            stream = self.storage.open(document["file_id"])
        except BlobNotFoundError:
            logger.error(f"Image document {document['_id']} points at missing blob {file_id}")
            raise ImageNotFoundError()
        return document, stream

    @log_execution_time
    def delete_image(self, file_id: str) -> None:
        """Delete the metadata document and the blob behind it"""
        document = self.get_image_document(file_id)
        if document is None:
            raise ImageNotFoundError()

        self.adapter.delete_image_by_file_id(document["file_id"])
        try:
            self.storage.delete(document["file_id"])
        except BlobNotFoundError:
            logger.warning(f"Blob {file_id} was already gone when deleting its image")
