"""Lock stand-in for blobs.

GCS offers no per-object lock. The engine still asks each blob for a lock
and retries forever on a falsy answer, so blobs hand out this no-op token.
"""


class NoopLock:
    """Truthy lock token whose release does nothing."""

    _instance: "NoopLock | None" = None

    def __new__(cls) -> "NoopLock":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "NOOP_LOCK"

    def release(self, *, sync: bool = False):
        if sync:
            return None
        return _released()


async def _released() -> None:
    return None


NOOP_LOCK = NoopLock()
