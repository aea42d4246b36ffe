"""Google Cloud Storage backing store for a key-value engine."""

from kv_gcs.blob import CloudStorageBlob
from kv_gcs.config import StoreConfig, StoreSpec, load_spec
from kv_gcs.connection import (
    ConnectedStore,
    connect_bucket_store,
    connect_store,
    delete_store,
    release,
)
from kv_gcs.errors import IncompleteRecord, KVStoreError, MisconfiguredStore, ObjectNotFound
from kv_gcs.lock import NOOP_LOCK
from kv_gcs.logging_config import configure_logging
from kv_gcs.store import CloudStorageBucket

__all__ = [
    "CloudStorageBlob",
    "CloudStorageBucket",
    "configure_logging",
    "ConnectedStore",
    "connect_bucket_store",
    "connect_store",
    "delete_store",
    "IncompleteRecord",
    "KVStoreError",
    "load_spec",
    "MisconfiguredStore",
    "NOOP_LOCK",
    "ObjectNotFound",
    "release",
    "StoreConfig",
    "StoreSpec",
]
