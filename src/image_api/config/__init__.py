"""
Configuration management for the Image API.

Contains Pydantic settings shared by the HTTP app, the CLI and the storage
adapters, for both the gridfs and local blob backends.
"""
