"""Backing store interfaces expected by the key-value engine.

The engine drives storage through three small capabilities: a backing
store that spawns blobs, the blobs themselves, and the lock a blob hands
out. Every method takes a ``sync`` flag: with ``sync=True`` it returns the
result, otherwise it returns an awaitable resolving to the result.
"""

from typing import Any, Awaitable, Callable, Protocol, TypeVar, Union, runtime_checkable

T = TypeVar("T")

# Result of an operation: a value in sync mode, an awaitable otherwise.
MaybeAwaitable = Union[T, Awaitable[T]]

# Fixed size in bytes of the record header written by the engine.
HEADER_SIZE = 20

# Receives {"size": int, "input_stream": BinaryIO} for binary values.
BinaryConsumer = Callable[[dict[str, Any]], Any]


@runtime_checkable
class BackingLock(Protocol):
    """Lock handed out by a blob for the duration of an engine operation."""

    def release(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...


@runtime_checkable
class BackingBlob(Protocol):
    """One record, written as header/meta/value segments and read back by slices."""

    def write_header(self, header: bytes, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def write_meta(self, meta: bytes, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def write_value(
        self, value: bytes, meta_size: int, *, sync: bool = False
    ) -> MaybeAwaitable[None]:
        ...

    def write_binary(
        self, meta_size: int, blob: Any, *, sync: bool = False
    ) -> MaybeAwaitable[None]:
        ...

    def flush(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def read_header(self, *, sync: bool = False) -> MaybeAwaitable[bytes]:
        ...

    def read_meta(self, meta_size: int, *, sync: bool = False) -> MaybeAwaitable[bytes]:
        ...

    def read_value(self, meta_size: int, *, sync: bool = False) -> MaybeAwaitable[bytes]:
        ...

    def read_binary(
        self, meta_size: int, consumer: BinaryConsumer, *, sync: bool = False
    ) -> MaybeAwaitable[Any]:
        ...

    def close(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def get_lock(self, *, sync: bool = False) -> MaybeAwaitable[BackingLock]:
        ...


@runtime_checkable
class BackingStore(Protocol):
    """The namespace holding all records of one store."""

    def create_blob(self, key: str, *, sync: bool = False) -> MaybeAwaitable[BackingBlob]:
        ...

    def delete_blob(self, key: str, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def blob_exists(self, key: str, *, sync: bool = False) -> MaybeAwaitable[bool]:
        ...

    def copy(self, from_key: str, to_key: str, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def atomic_move(
        self, from_key: str, to_key: str, *, sync: bool = False
    ) -> MaybeAwaitable[None]:
        ...

    def migratable(
        self, key: str, store_key: str, *, sync: bool = False
    ) -> MaybeAwaitable[Any]:
        ...

    def migrate(
        self,
        migration_key: Any,
        key_vec: Any,
        serializer: Any,
        read_handlers: Any,
        write_handlers: Any,
        *,
        sync: bool = False,
    ) -> MaybeAwaitable[Any]:
        ...

    def create_store(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def sync_store(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def delete_store(self, *, sync: bool = False) -> MaybeAwaitable[None]:
        ...

    def keys(self, *, sync: bool = False) -> MaybeAwaitable[set[str]]:
        ...
