"""Blob adapter: one engine record stored as a single GCS object.

Writes of header, meta and value are buffered in memory until ``flush``,
which concatenates them and uploads the object in one request. The first
read downloads the whole object and caches it; every later segment read on
the same instance slices the cached bytes.

The read cache is not invalidated by ``flush``. Read-after-write on one
instance returns the previously fetched bytes; create a new blob to see
fresh content.
"""

import inspect
import io
import logging
from typing import TYPE_CHECKING, Any

from kv_gcs.addressing import object_name
from kv_gcs.errors import IncompleteRecord
from kv_gcs.lock import NOOP_LOCK, NoopLock
from kv_gcs.logging_config import store_context
from kv_gcs.protocols import HEADER_SIZE, BinaryConsumer

if TYPE_CHECKING:
    from kv_gcs.execution import BlockingRunner
    from kv_gcs.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

_SEGMENTS = ("header", "meta", "value")


class ValueStream(io.RawIOBase):
    """Read-only seekable stream over the value segment of a fetched object.

    Reads copy only the requested chunk out of the shared buffer, so the
    value is never duplicated as a whole.
    """

    def __init__(self, view: memoryview) -> None:
        super().__init__()
        self._view = view
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        chunk = self._view[self._pos : self._pos + len(buffer)]
        n = len(chunk)
        buffer[:n] = chunk
        self._pos += n
        return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            pos = offset
        elif whence == io.SEEK_CUR:
            pos = self._pos + offset
        elif whence == io.SEEK_END:
            pos = len(self._view) + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if pos < 0:
            raise ValueError(f"Negative seek position: {pos}")
        self._pos = pos
        return pos

    def tell(self) -> int:
        return self._pos


class CloudStorageBlob:
    """Backing blob for a single key of a store.

    Attributes:
        store: Object store holding the record.
        store_path: Namespace prefix of the owning store.
        key: The engine's blob key (including its record suffix).
        header_size: Length of the engine header segment.
    """

    def __init__(
        self,
        store: "ObjectStore",
        store_path: str,
        key: str,
        runner: "BlockingRunner",
        header_size: int = HEADER_SIZE,
    ) -> None:
        self.store = store
        self.store_path = store_path
        self.key = key
        self.header_size = header_size
        self._runner = runner
        self._pending: dict[str, bytes] = {}
        self._fetched: bytes | None = None

    @property
    def name(self) -> str:
        """The GCS object name of this record."""
        return object_name(self.store_path, self.key)

    # -- writes ---------------------------------------------------------------

    async def _set_segment(self, segment: str, data: bytes) -> None:
        self._pending[segment] = data

    def write_header(self, header: bytes, *, sync: bool = False):
        return self._runner.dispatch(self._set_segment("header", header), sync)

    def write_meta(self, meta: bytes, *, sync: bool = False):
        return self._runner.dispatch(self._set_segment("meta", meta), sync)

    def write_value(self, value: bytes, meta_size: int, *, sync: bool = False):
        return self._runner.dispatch(self._set_segment("value", value), sync)

    def write_binary(self, meta_size: int, blob: Any, *, sync: bool = False):
        """Set the value from raw bytes or a readable binary stream."""
        if hasattr(blob, "read"):
            blob = blob.read()
        return self._runner.dispatch(self._set_segment("value", bytes(blob)), sync)

    async def _flush(self) -> None:
        missing = [s for s in _SEGMENTS if self._pending.get(s) is None]
        if missing:
            raise IncompleteRecord(list(self._pending))
        payload = b"".join(self._pending[segment] for segment in _SEGMENTS)
        await self.store.put(self.name, payload)
        logger.debug(
            "Flushed %s (%d bytes)",
            self.name,
            len(payload),
            extra=store_context(self.store.bucket_name, self.store_path, self.name),
        )
        self._pending = {}

    def flush(self, *, sync: bool = False):
        """Upload header+meta+value as one object and clear the buffer.

        Raises:
            IncompleteRecord: If any segment is unset. Nothing is written.
        """
        return self._runner.dispatch(self._flush(), sync)

    # -- reads ----------------------------------------------------------------

    async def _object(self) -> bytes:
        if self._fetched is None:
            self._fetched = await self.store.get(self.name)
        return self._fetched

    async def _read_header(self) -> bytes:
        obj = await self._object()
        return obj[: self.header_size]

    async def _read_meta(self, meta_size: int) -> bytes:
        obj = await self._object()
        return obj[self.header_size : self.header_size + meta_size]

    async def _read_value(self, meta_size: int) -> bytes:
        obj = await self._object()
        return obj[self.header_size + meta_size :]

    async def _read_binary(self, meta_size: int, consumer: BinaryConsumer) -> Any:
        obj = await self._object()
        offset = self.header_size + meta_size
        view = memoryview(obj)[offset:]
        result = consumer({"size": len(view), "input_stream": ValueStream(view)})
        if inspect.isawaitable(result):
            result = await result
        return result

    def read_header(self, *, sync: bool = False):
        """Return the header, downloading the object on first access.

        Raises:
            ObjectNotFound: If the record does not exist.
        """
        return self._runner.dispatch(self._read_header(), sync)

    def read_meta(self, meta_size: int, *, sync: bool = False):
        return self._runner.dispatch(self._read_meta(meta_size), sync)

    def read_value(self, meta_size: int, *, sync: bool = False):
        return self._runner.dispatch(self._read_value(meta_size), sync)

    def read_binary(self, meta_size: int, consumer: BinaryConsumer, *, sync: bool = False):
        """Hand the value to ``consumer`` as a seekable stream plus its size.

        The consumer is called with ``{"size": int, "input_stream": BinaryIO}``
        and may return an awaitable, which is awaited. Its result is returned.
        """
        return self._runner.dispatch(self._read_binary(meta_size, consumer), sync)

    # -- lifecycle ------------------------------------------------------------

    async def _noop(self) -> None:
        return None

    async def _get_lock(self) -> NoopLock:
        return NOOP_LOCK

    def close(self, *, sync: bool = False):
        return self._runner.dispatch(self._noop(), sync)

    def get_lock(self, *, sync: bool = False):
        # The engine retries forever on a falsy lock.
        return self._runner.dispatch(self._get_lock(), sync)

    def __repr__(self) -> str:
        return f"CloudStorageBlob(bucket={self.store.bucket_name!r}, name={self.name!r})"
