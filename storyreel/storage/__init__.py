"""
Durable blob storage for generated images and highlight videos
"""

from .blob import BlobStore, LocalBlobStore, image_key, video_key

__all__ = ["BlobStore", "LocalBlobStore", "image_key", "video_key"]
