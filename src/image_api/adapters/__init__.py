"""
Adapter layer for the Image API.

Contains the blob storage abstraction with GridFS and local filesystem backends.
"""
