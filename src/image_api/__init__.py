"""Image API: upload, list, stream and delete images backed by MongoDB GridFS."""
