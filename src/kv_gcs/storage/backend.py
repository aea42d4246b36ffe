"""Object storage capability used by the backing store adapter."""

from typing import Iterable, Protocol


class ObjectStore(Protocol):
    """Protocol defining the object storage capability.

    Implementations address objects by full object name inside a single
    bucket and only support whole-object reads and writes. Methods raise
    ``ObjectNotFound`` for missing objects where noted; every other failure
    is propagated unchanged.
    """

    bucket_name: str

    async def put(self, name: str, data: bytes) -> None:
        """Store an object's bytes, replacing any existing object.

        Args:
            name: The object name.
            data: The raw bytes to store.
        """
        ...

    async def get(self, name: str) -> bytes:
        """Retrieve an object's bytes.

        Args:
            name: The object name.

        Returns:
            The raw bytes of the object.

        Raises:
            ObjectNotFound: If the object does not exist.
        """
        ...

    async def delete(self, name: str) -> None:
        """Delete an object. Deleting an absent object is a no-op."""
        ...

    async def delete_many(self, names: Iterable[str]) -> None:
        """Delete a batch of objects in one call. Absent objects are skipped."""
        ...

    async def exists(self, name: str) -> bool:
        """Check if an object exists.

        Returns:
            True if the object exists.
        """
        ...

    async def copy(self, src_name: str, dst_name: str) -> None:
        """Server-side copy of one object to a new name in the same bucket.

        Raises:
            ObjectNotFound: If the source object does not exist.
        """
        ...

    async def list_names(self, prefix: str, delimiter: str = "/") -> list[str]:
        """List object names under a prefix with folder semantics.

        Args:
            prefix: Name prefix to list under.
            delimiter: Folder delimiter; objects in deeper folders are omitted.

        Returns:
            Every matching object name, across all result pages.
        """
        ...

    async def bucket_exists(self) -> bool:
        """Check if the bucket exists."""
        ...

    async def create_bucket(self, location: str) -> None:
        """Create the bucket at the given location."""
        ...

    async def close(self) -> None:
        """Release resources held by the client."""
        ...
