"""
Image API Database Layer

Services that combine MongoDB metadata documents with blob storage.
"""

from .image_service import ImageService, ImagePage

__all__ = ['ImageService', 'ImagePage']
