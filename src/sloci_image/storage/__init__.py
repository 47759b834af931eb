"""
Storage package - content-addressable blobs in an OCI Image Layout.
"""
from .base import BlobStore
from .layout_store import OciLayoutBlobStore

__all__ = ["BlobStore", "OciLayoutBlobStore"]
