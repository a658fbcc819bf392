from fastapi import Request

from image_api.config.settings import Settings
from image_api.db_layer import ImageService


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_image_service(request: Request) -> ImageService:
    """Image service dependency."""
    return ImageService(
        adapter=request.app.state.mongo_adapter,
        storage=request.app.state.blob_storage,
    )
