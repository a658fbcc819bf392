from contextlib import asynccontextmanager
from textwrap import dedent
import logging
import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from database.local import init_db
from database.mongo_adapter import MongoAdapter
from image_api.adapters.storage import BlobStorage, get_blob_storage
from image_api.errors import (
    ImageApiError,
    handle_broad_exceptions,
    handle_http_exceptions,
    handle_image_api_errors,
    handle_pydantic_validation_errors,
    handle_request_validation_errors,
)
from image_api.routers.images import router as images_router
from image_api.routers.health import router as health_router
from image_api.config.settings import Settings

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)


def create_app(
    settings: Settings | None = None,
    mongo_adapter: MongoAdapter | None = None,
    blob_storage: BlobStorage | None = None,
) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings)

    owns_adapter = mongo_adapter is None
    if mongo_adapter is None:
        mongo_adapter = MongoAdapter(
            connection_string=settings.mongodb_uri,
            database_name=settings.database_name,
            images_collection=settings.images_collection,
        )
    blob_storage = blob_storage or get_blob_storage(settings, mongo_adapter)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_adapter:
            mongo_adapter.close()

    app = FastAPI(
        title="Image API",
        summary="Upload, list, stream and delete images",
        version="v1",
        description=dedent(
            """\
        Images are stored in a MongoDB GridFS bucket; their metadata lives in a regular collection.

        | Helpful Links | Notes |
        | --- | --- |
        | [FastAPI Documentation](https://fastapi.tiangolo.com/) | |
        | [GridFS](https://www.mongodb.com/docs/manual/core/gridfs/) | How image content is chunked |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.mongo_adapter = mongo_adapter
    app.state.blob_storage = blob_storage
    logger.info("creating db indexes")
    init_db(mongo_adapter)

    app.include_router(images_router, prefix=settings.api_prefix, tags=["images"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(ImageApiError, handle_image_api_errors)
    app.add_exception_handler(StarletteHTTPException, handle_http_exceptions)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
