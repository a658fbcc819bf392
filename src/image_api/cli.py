# cli.py
import click
import logging
from image_api.config.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)

@click.group()
def cli():
    """CLI commands for the Image API"""
    pass

@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  API Prefix: {settings.api_prefix}")
    print(f"  MongoDB Database: {settings.database_name}")
    print(f"  Images Collection: {settings.images_collection}")
    print(f"  Blob Backend: {settings.blob_backend}")
    if settings.blob_backend == "gridfs":
        print(f"  GridFS Bucket: {settings.gridfs_bucket_name}")
    else:
        print(f"  Storage Dir: {settings.storage_dir}")
    print(f"  Max Upload Size: {settings.max_upload_size_bytes} bytes")
    print(f"  Allowed Content Types: {', '.join(settings.allowed_content_types)}")
    print(f"  Log Level: {settings.log_level}")

@cli.command()
def init_db():
    """Create the MongoDB indexes used by the API"""
    from database.local import close_mongo_adapter, get_mongo_adapter
    from database.local import init_db as init_indexes

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    try:
        init_indexes(get_mongo_adapter(settings))
        print(f"✅ Indexes created in database '{settings.database_name}'")
    finally:
        close_mongo_adapter()

@cli.command()
@click.option("--host", default=None, help="Interface to bind (defaults to settings.host)")
@click.option("--port", type=int, default=None, help="Port to bind (defaults to settings.port)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host, port, reload):
    """Run the API with uvicorn"""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    print(f"Serving Image API on http://{host}:{port}{settings.api_prefix}/images")
    uvicorn.run(
        "image_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )

if __name__ == "__main__":
    cli()
