"""Error definitions for the kv-gcs backing store."""


class KVStoreError(Exception):
    """Base class for errors raised by the backing store adapter."""


class IncompleteRecord(KVStoreError):
    """A flush was attempted before header, meta and value were all set.

    Attributes:
        present: Names of the segments that were set at flush time.
    """

    def __init__(self, present: list[str] | None = None) -> None:
        self.present = sorted(present or [])
        super().__init__(
            "Updating a record is only possible if header, meta and value "
            f"are set (present: {', '.join(self.present) or 'none'})."
        )


class ObjectNotFound(KVStoreError):
    """The requested object does not exist in the bucket.

    Attributes:
        bucket: The GCS bucket name.
        name: The object name inside the bucket.
    """

    def __init__(self, bucket: str, name: str) -> None:
        self.bucket = bucket
        self.name = name
        super().__init__(f"Object not found: {bucket}/{name}")


class MisconfiguredStore(KVStoreError):
    """Required connection fields are missing or invalid."""
