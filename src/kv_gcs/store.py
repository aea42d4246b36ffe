"""Store adapter: one engine store living under a path prefix of a GCS bucket.

All records of a store are objects named ``{store_path}/{key}``. GCS has no
rename, so ``atomic_move`` copies the object and then deletes the source.
A crash between the two steps leaves both objects behind; the destination
is always fully written before the source is removed.
"""

import logging
from typing import TYPE_CHECKING, Any

from kv_gcs.addressing import (
    SEPARATOR,
    is_record_name,
    object_name,
    store_prefix,
    strip_store_path,
)
from kv_gcs.blob import CloudStorageBlob
from kv_gcs.logging_config import store_context
from kv_gcs.protocols import HEADER_SIZE

if TYPE_CHECKING:
    from kv_gcs.execution import BlockingRunner
    from kv_gcs.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

# Maximum number of objects removed by one batch delete call.
DEFAULT_DELETION_BATCH_SIZE = 1000


class CloudStorageBucket:
    """Backing store for the records under one store path of a bucket.

    The adapter is stateless apart from its immutable configuration; the
    object store client is shared with every blob it creates.

    Attributes:
        store: Object store capability for the bucket.
        location: Bucket location, used only when creating the bucket.
        store_path: Namespace prefix of this store's objects.
        runner: Executes operations in sync or async mode.
        deletion_batch_size: Objects per ``delete_many`` call in ``delete_store``.
    """

    def __init__(
        self,
        store: "ObjectStore",
        location: str,
        store_path: str,
        runner: "BlockingRunner",
        deletion_batch_size: int = DEFAULT_DELETION_BATCH_SIZE,
        header_size: int = HEADER_SIZE,
    ) -> None:
        if deletion_batch_size < 1:
            raise ValueError("deletion_batch_size must be positive")
        self.store = store
        self.location = location
        self.store_path = store_path
        self.runner = runner
        self.deletion_batch_size = deletion_batch_size
        self.header_size = header_size

    @property
    def bucket(self) -> str:
        return self.store.bucket_name

    def _name(self, key: str) -> str:
        return object_name(self.store_path, key)

    @property
    def _log_context(self) -> dict:
        return store_context(self.bucket, self.store_path)

    # -- blobs ----------------------------------------------------------------

    async def _create_blob(self, key: str) -> CloudStorageBlob:
        return CloudStorageBlob(
            self.store, self.store_path, key, self.runner, header_size=self.header_size
        )

    def create_blob(self, key: str, *, sync: bool = False):
        """Return a blob adapter for ``key``. No I/O."""
        return self.runner.dispatch(self._create_blob(key), sync)

    async def _delete_blob(self, key: str) -> None:
        await self.store.delete(self._name(key))

    def delete_blob(self, key: str, *, sync: bool = False):
        """Delete the record for ``key``. An absent record is not an error."""
        return self.runner.dispatch(self._delete_blob(key), sync)

    async def _blob_exists(self, key: str) -> bool:
        return await self.store.exists(self._name(key))

    def blob_exists(self, key: str, *, sync: bool = False):
        return self.runner.dispatch(self._blob_exists(key), sync)

    async def _copy(self, from_key: str, to_key: str) -> None:
        await self.store.copy(self._name(from_key), self._name(to_key))

    def copy(self, from_key: str, to_key: str, *, sync: bool = False):
        """Server-side copy of one record to another key of this store.

        Raises:
            ObjectNotFound: If the source record does not exist.
        """
        return self.runner.dispatch(self._copy(from_key, to_key), sync)

    async def _atomic_move(self, from_key: str, to_key: str) -> None:
        await self._copy(from_key, to_key)
        await self._delete_blob(from_key)

    def atomic_move(self, from_key: str, to_key: str, *, sync: bool = False):
        """Move a record by copying it and then deleting the source."""
        return self.runner.dispatch(self._atomic_move(from_key, to_key), sync)

    async def _nothing(self) -> None:
        return None

    def migratable(self, key: str, store_key: str, *, sync: bool = False):
        # No migration path from other backends.
        return self.runner.dispatch(self._nothing(), sync)

    def migrate(
        self,
        migration_key: Any,
        key_vec: Any,
        serializer: Any,
        read_handlers: Any,
        write_handlers: Any,
        *,
        sync: bool = False,
    ):
        return self.runner.dispatch(self._nothing(), sync)

    # -- store lifecycle ------------------------------------------------------

    async def _create_store(self) -> None:
        if await self.store.bucket_exists():
            return
        logger.info(
            "Creating bucket %s in %s", self.bucket, self.location, extra=self._log_context
        )
        await self.store.create_bucket(self.location)

    def create_store(self, *, sync: bool = False):
        """Create the bucket if it does not exist yet."""
        return self.runner.dispatch(self._create_store(), sync)

    def sync_store(self, *, sync: bool = False):
        return self.runner.dispatch(self._nothing(), sync)

    async def _record_names(self) -> list[str]:
        names = await self.store.list_names(store_prefix(self.store_path), delimiter=SEPARATOR)
        return [name for name in names if is_record_name(name, self.store_path)]

    async def _delete_store(self) -> None:
        if not await self.store.bucket_exists():
            logger.info(
                "Bucket %s does not exist, nothing to delete",
                self.bucket,
                extra=self._log_context,
            )
            return
        names = await self._record_names()
        size = self.deletion_batch_size
        batches = [names[i : i + size] for i in range(0, len(names), size)]
        for batch in batches:
            await self.store.delete_many(batch)
        logger.info(
            "Deleted %d records of store %s in %d batches",
            len(names),
            self.store_path,
            len(batches),
            extra=self._log_context,
        )
        await self.store.close()

    def delete_store(self, *, sync: bool = False):
        """Delete every record of this store, then close the client.

        Records are removed in batches of ``deletion_batch_size``. A missing
        bucket makes this a no-op.
        """
        return self.runner.dispatch(self._delete_store(), sync)

    async def _keys(self) -> set[str]:
        return {strip_store_path(name, self.store_path) for name in await self._record_names()}

    def keys(self, *, sync: bool = False):
        """Return the keys of all records, without the store path prefix."""
        return self.runner.dispatch(self._keys(), sync)

    async def close_client(self) -> None:
        await self.store.close()

    def __repr__(self) -> str:
        return f"CloudStorageBucket(bucket={self.bucket!r}, store_path={self.store_path!r})"
