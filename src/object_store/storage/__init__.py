"""Storage backends for object-store."""

from object_store.storage.blobs import BlobStore
from object_store.storage.database import MetadataIndex

__all__ = ["BlobStore", "MetadataIndex"]
