import logging
from datetime import timezone
from email.utils import format_datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Path,
    Response,
    UploadFile,
    status
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from image_api.config.settings import Settings
from image_api.db_layer import ImageService
from image_api.dependencies import get_app_settings, get_image_service
from image_api.errors import (
    ImageNotFoundError,
    ImageTooLargeError,
    InvalidPageSizeError,
    MissingImageFileError,
    UnsupportedMediaTypeError,
    envelope,
)
from image_api.schemas import (
    DeleteImageResponse,
    GetImageMetadataResponse,
    GetImagesQueryParams,
    GetImagesResponse,
    ImageMetadata,
    ImagePageData,
    Pagination,
    UploadImageForm,
    UploadImageResponse,
)
from image_api.utils.decorators import async_log_execution_time

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_RESPONSE = {
    status.HTTP_404_NOT_FOUND: {
        "description": "No image exists for the given `file_id`.",
        "content": {"application/json": {"example": envelope(404, "Image not found")}},
    },
}


def _image_headers(document: Dict[str, Any]) -> Dict[str, str]:
    upload_date = document["upload_date"]
    if upload_date.tzinfo is None:
        # BSON datetimes come back naive, in UTC
        upload_date = upload_date.replace(tzinfo=timezone.utc)
    return {
        "Content-Type": document["content_type"],
        "Content-Length": str(document["size"]),
        "Content-Disposition": f"inline; filename*=UTF-8''{quote(document['filename'])}",
        "Last-Modified": format_datetime(upload_date.astimezone(timezone.utc), usegmt=True),
    }


@router.get("/images", response_model=GetImagesResponse)
def list_images(
    query_params: GetImagesQueryParams = Depends(),
    settings: Settings = Depends(get_app_settings),
    image_service: ImageService = Depends(get_image_service),
) -> GetImagesResponse:
    """
    List images newest first, one page at a time.

    Pass the returned `next_cursor` as `cursor` to get the following page.
    """
    limit = query_params.limit or settings.default_page_size
    if limit > settings.max_page_size:
        raise InvalidPageSizeError(f"limit: must be at most {settings.max_page_size}")

    page = image_service.list_images(
        cursor=query_params.cursor,
        limit=limit,
        search=query_params.search,
    )
    return GetImagesResponse(
        data=ImagePageData(
            images=[ImageMetadata.from_document(doc, settings.api_prefix) for doc in page.images],
            pagination=Pagination(next_cursor=page.next_cursor, has_more=page.has_more),
        )
    )


@router.post(
    "/images/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadImageResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Missing file, invalid form fields or not a JPEG/PNG/WebP image."},
        413: {"description": "The file exceeds the upload limit."},
    },
)
@async_log_execution_time
async def upload_image(
    image: Optional[UploadFile] = File(None, description="JPEG, PNG or WebP image"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    width: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    settings: Settings = Depends(get_app_settings),
    image_service: ImageService = Depends(get_image_service),
) -> UploadImageResponse:
    """Upload an image with its title and description."""
    if image is None or not image.filename:
        raise MissingImageFileError()

    if image.content_type not in settings.allowed_content_types:
        raise UnsupportedMediaTypeError()

    # Read one byte past the limit so oversize uploads are detected without buffering them whole
    data = await image.read(settings.max_upload_size_bytes + 1)
    if len(data) > settings.max_upload_size_bytes:
        raise ImageTooLargeError(f"File too large. Maximum size is {settings.max_upload_size_label}")

    form = UploadImageForm(title=title, description=description, width=width, height=height)

    document = await run_in_threadpool(
        image_service.upload_image,
        data,
        filename=image.filename,
        declared_content_type=image.content_type,
        title=form.title,
        description=form.description,
        width=form.width,
        height=form.height,
    )
    return UploadImageResponse(image=ImageMetadata.from_document(document, settings.api_prefix))


@router.get(
    "/images/{file_id}",
    responses={
        **NOT_FOUND_RESPONSE,
        status.HTTP_200_OK: {
            "description": "The image content.",
            "content": {
                "image/jpeg": {"schema": {"type": "string", "format": "binary"}},
                "image/png": {"schema": {"type": "string", "format": "binary"}},
                "image/webp": {"schema": {"type": "string", "format": "binary"}},
            },
        },
    },
)
def get_image(
    file_id: str = Path(..., description="Id of the image blob"),
    image_service: ImageService = Depends(get_image_service),
) -> StreamingResponse:
    """Stream the image content."""
    document, stream = image_service.open_image_stream(file_id)
    headers = _image_headers(document)
    media_type = headers.pop("Content-Type")
    return StreamingResponse(content=stream, media_type=media_type, headers=headers)


@router.head(
    "/images/{file_id}",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "No image exists for the given `file_id`."},
        status.HTTP_200_OK: {
            "headers": {
                "Content-Type": {"description": "The MIME type of the image.", "schema": {"type": "string"}},
                "Content-Length": {"description": "The size of the image in bytes.", "schema": {"type": "integer"}},
                "Last-Modified": {"description": "When the image was uploaded.", "schema": {"type": "string"}},
            }
        },
    },
)
def get_image_headers(
    file_id: str = Path(..., description="Id of the image blob"),
    image_service: ImageService = Depends(get_image_service),
) -> Response:
    """
    Retrieve image headers.

    Note: by convention, HEAD requests MUST NOT return a body in the response.
    """
    document = image_service.get_image_document(file_id)
    if document is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(status_code=status.HTTP_200_OK, headers=_image_headers(document))


@router.get(
    "/images/{file_id}/metadata",
    response_model=GetImageMetadataResponse,
    responses=NOT_FOUND_RESPONSE,
)
def get_image_metadata(
    file_id: str = Path(..., description="Id of the image blob"),
    settings: Settings = Depends(get_app_settings),
    image_service: ImageService = Depends(get_image_service),
) -> GetImageMetadataResponse:
    """Retrieve the metadata stored for an image."""
    document = image_service.get_image_document(file_id)
    if document is None:
        raise ImageNotFoundError()
    return GetImageMetadataResponse(image=ImageMetadata.from_document(document, settings.api_prefix))


@router.delete(
    "/images/{file_id}",
    response_model=DeleteImageResponse,
    responses=NOT_FOUND_RESPONSE,
)
def delete_image(
    file_id: str = Path(..., description="Id of the image blob"),
    image_service: ImageService = Depends(get_image_service),
) -> DeleteImageResponse:
    """Delete an image's content and metadata."""
    image_service.delete_image(file_id)
    return DeleteImageResponse()
