import logging

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    return {"message": "Server is running!"}


@router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint for monitoring API status and component readiness.

    Returns status of the API and database components along with the blob backend in use.
    """
    settings = request.app.state.settings

    health_status = {
        "status": "ok",
        "blob_backend": settings.blob_backend,
        "components": {
            "api": "ready",
            "database": "initializing",
        },
        "ready": False
    }

    # Check database status
    try:
        request.app.state.mongo_adapter.ping()
        health_status["components"]["database"] = "ready"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        health_status["components"]["database"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    # Overall ready status
    health_status["ready"] = all(
        state == "ready" for state in health_status["components"].values()
    )

    return health_status
