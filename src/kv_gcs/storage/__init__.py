"""Object storage capabilities for the backing store adapter."""

from kv_gcs.storage.backend import ObjectStore
from kv_gcs.storage.gcs import GCSObjectStore
from kv_gcs.storage.memory import MemoryObjectStore

__all__ = ["GCSObjectStore", "MemoryObjectStore", "ObjectStore"]
