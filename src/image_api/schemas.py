####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    field_validator,
)

from database.schemas import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH

DEFAULT_GET_IMAGES_MIN_PAGE_SIZE = 1
SEARCH_MAX_LENGTH = 100


class ImageMetadata(BaseModel):
    """Metadata of a stored image."""
    id: str = Field(description="Id of the metadata document.")
    file_id: str = Field(
        description="Id of the blob holding the image content.",
        json_schema_extra={"example": "665f1c2e9b1e8a0d4c3b2a10"},
    )
    title: str
    description: str
    filename: str
    size: int = Field(description="The size of the image in bytes.")
    content_type: str = Field(json_schema_extra={"example": "image/png"})
    width: Optional[int] = None
    height: Optional[int] = None
    upload_date: datetime
    url: str = Field(description="Where the image content can be fetched.")

    @classmethod
    def from_document(cls, document: Dict[str, Any], api_prefix: str = "") -> "ImageMetadata":
        file_id = str(document["file_id"])
        return cls(
            id=str(document["_id"]),
            file_id=file_id,
            title=document["title"],
            description=document["description"],
            filename=document["filename"],
            size=document["size"],
            content_type=document["content_type"],
            width=document.get("width"),
            height=document.get("height"),
            upload_date=document["upload_date"],
            url=f"{api_prefix}/images/{file_id}",
        )


class Pagination(BaseModel):
    next_cursor: Optional[str] = Field(
        None,
        description="Pass as `cursor` to fetch the next page; null on the last page.",
    )
    has_more: bool


class ImagePageData(BaseModel):
    images: List[ImageMetadata]
    pagination: Pagination


class GetImagesResponse(BaseModel):
    """Response model for `GET /images`."""
    returncode: str = "200"
    message: str = "Images retrieved successfully"
    data: ImagePageData

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "returncode": "200",
                "message": "Images retrieved successfully",
                "data": {
                    "images": [
                        {
                            "id": "665f1c2e9b1e8a0d4c3b2a11",
                            "file_id": "665f1c2e9b1e8a0d4c3b2a10",
                            "title": "Sunset",
                            "description": "Sunset over the bay",
                            "filename": "sunset.png",
                            "size": 20480,
                            "content_type": "image/png",
                            "width": 640,
                            "height": 480,
                            "upload_date": "2024-01-01T00:00:00Z",
                            "url": "/api/images/665f1c2e9b1e8a0d4c3b2a10",
                        }
                    ],
                    "pagination": {"next_cursor": None, "has_more": False},
                },
            }
        }
    )


class GetImagesQueryParams(BaseModel):
    """Query parameters for `GET /images`."""
    cursor: Optional[str] = Field(
        None,
        description="The `next_cursor` returned by the previous page.",
    )
    limit: Optional[int] = Field(
        None,
        ge=DEFAULT_GET_IMAGES_MIN_PAGE_SIZE,
        description="Page size; defaults to and is capped by the configured page size settings.",
    )
    search: Optional[str] = Field(
        None,
        max_length=SEARCH_MAX_LENGTH,
        description="Case-insensitive text matched against title and description.",
    )

    @field_validator('cursor', 'search')
    @classmethod
    def blank_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class UploadImageForm(BaseModel):
    """Form fields accompanying an upload."""
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None

    @field_validator('title', 'description', mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('width', 'height', mode='before')
    @classmethod
    def empty_dimension_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UploadImageResponse(BaseModel):
    """Response model for `POST /images/upload`."""
    returncode: str = "200"
    message: str = "Upload successful"
    image: ImageMetadata


class GetImageMetadataResponse(BaseModel):
    """Response model for `GET /images/:file_id/metadata`."""
    returncode: str = "200"
    message: str = "Image retrieved successfully"
    image: ImageMetadata


class DeleteImageResponse(BaseModel):
    """Response model for `DELETE /images/:file_id`."""
    returncode: str = "200"
    message: str = "Image deleted successfully"
