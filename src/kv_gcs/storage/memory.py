"""In-memory object store for the backing store adapter.

Implements the ObjectStore protocol using a Python dictionary keyed by
object name. Intended for local development and tests: it mirrors the GCS
capability's semantics (whole-object writes, 404-tolerant deletes, folder
listing with a delimiter) without any network access.

Every capability call is counted in ``calls`` so callers can assert how
many round trips an operation performed.
"""

import logging
from collections import Counter
from collections.abc import Iterable

from kv_gcs.errors import ObjectNotFound

logger = logging.getLogger(__name__)


class MemoryStorageError(Exception):
    """Raised when the simulated bucket cannot fulfill a request."""


class MemoryObjectStore:
    """Object store that holds one bucket's objects in memory.

    Attributes:
        bucket_name: Name reported for the simulated bucket.
        location: Location passed to ``create_bucket``, if it was called.
        calls: Number of calls made per capability method.
        closed: Whether ``close`` has been called.
    """

    def __init__(self, bucket_name: str = "memory", bucket_exists: bool = True) -> None:
        self.bucket_name = bucket_name
        self.location: str | None = None
        self.calls: Counter[str] = Counter()
        self.closed = False
        self._bucket_exists = bucket_exists
        self._objects: dict[str, bytes] = {}

    def _require_bucket(self) -> None:
        if not self._bucket_exists:
            raise MemoryStorageError(f"Bucket does not exist: {self.bucket_name}")

    @property
    def names(self) -> list[str]:
        """Sorted names of all stored objects."""
        return sorted(self._objects)

    async def close(self) -> None:
        self.calls["close"] += 1
        self.closed = True

    async def put(self, name: str, data: bytes) -> None:
        self.calls["put"] += 1
        self._require_bucket()
        self._objects[name] = bytes(data)

    async def get(self, name: str) -> bytes:
        self.calls["get"] += 1
        try:
            return self._objects[name]
        except KeyError:
            raise ObjectNotFound(self.bucket_name, name) from None

    async def delete(self, name: str) -> None:
        self.calls["delete"] += 1
        self._objects.pop(name, None)

    async def delete_many(self, names: Iterable[str]) -> None:
        self.calls["delete_many"] += 1
        for name in names:
            self._objects.pop(name, None)

    async def exists(self, name: str) -> bool:
        self.calls["exists"] += 1
        return name in self._objects

    async def copy(self, src_name: str, dst_name: str) -> None:
        self.calls["copy"] += 1
        try:
            self._objects[dst_name] = self._objects[src_name]
        except KeyError:
            raise ObjectNotFound(self.bucket_name, src_name) from None

    async def list_names(self, prefix: str, delimiter: str = "/") -> list[str]:
        """List object names directly under ``prefix``.

        Names containing ``delimiter`` after the prefix belong to a deeper
        folder and are omitted, matching GCS delimiter listing.
        """
        self.calls["list_names"] += 1
        self._require_bucket()
        return [
            name
            for name in sorted(self._objects)
            if name.startswith(prefix)
            and not (delimiter and delimiter in name[len(prefix):])
        ]

    async def bucket_exists(self) -> bool:
        self.calls["bucket_exists"] += 1
        return self._bucket_exists

    async def create_bucket(self, location: str) -> None:
        self.calls["create_bucket"] += 1
        if self._bucket_exists:
            raise MemoryStorageError(f"Bucket already exists: {self.bucket_name}")
        self._bucket_exists = True
        self.location = location
        logger.info("Created in-memory bucket %s in %s", self.bucket_name, location)
