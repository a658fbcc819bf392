"""
JSON schemas for image document validation.
This module defines the schema documents in the images collection must satisfy.
"""

from typing import Dict, Any, Optional
from datetime import datetime
import jsonschema
from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class ImageDocumentSchema(BaseModel):
    """Schema for image metadata documents"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Image title")
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH, description="Image description")
    filename: str = Field(..., min_length=1, max_length=255, description="Original filename")
    size: int = Field(..., ge=0, description="Content length in bytes")
    content_type: str = Field(..., description="MIME type of the stored content")
    file_id: ObjectId = Field(..., description="Id of the blob holding the content")
    upload_date: datetime = Field(..., description="Upload timestamp")
    width: Optional[int] = Field(None, gt=0, description="Width in pixels")
    height: Optional[int] = Field(None, gt=0, description="Height in pixels")

    @field_validator('title', 'description')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip()


IMAGE_JSON_SCHEMA = {
    "type": "object",
    "required": ["title", "description", "filename", "size", "content_type", "file_id", "upload_date"],
    "properties": {
        "title": {"type": "string", "minLength": 1, "maxLength": TITLE_MAX_LENGTH},
        "description": {"type": "string", "minLength": 1, "maxLength": DESCRIPTION_MAX_LENGTH},
        "filename": {"type": "string", "minLength": 1, "maxLength": 255},
        "size": {"type": "integer", "minimum": 0},
        "content_type": {"type": "string", "pattern": "^image/"},
        "file_id": {"type": "string", "pattern": "^[0-9a-f]{24}$"},
        "upload_date": {"type": "string", "format": "date-time"},
        "width": {"type": ["integer", "null"], "exclusiveMinimum": 0},
        "height": {"type": ["integer", "null"], "exclusiveMinimum": 0},
    },
}


def _to_json_compatible(document: Dict[str, Any]) -> Dict[str, Any]:
    """BSON types are not JSON types; render them as strings before schema checks."""
    converted = {}
    for key, value in document.items():
        if isinstance(value, ObjectId):
            converted[key] = str(value)
        elif isinstance(value, datetime):
            converted[key] = value.isoformat()
        else:
            converted[key] = value
    return converted


def validate_image_document(document: Dict[str, Any]) -> None:
    """Validate an image document against the schema"""
    jsonschema.validate(_to_json_compatible(document), IMAGE_JSON_SCHEMA)


DOCUMENT_VALIDATORS = {
    'images': validate_image_document,
}
