"""Object naming for records stored under a store path.

Records live at ``{store_path}/{key}``. The engine appends one of the
two-phase write suffixes to its keys; all three count as live records.
"""

SEPARATOR = "/"

RECORD_SUFFIX = ".ksv"
STAGED_SUFFIX = ".ksv.new"
BACKUP_SUFFIX = ".ksv.backup"

RECORD_SUFFIXES = (RECORD_SUFFIX, STAGED_SUFFIX, BACKUP_SUFFIX)


def object_name(store_path: str, key: str, suffix: str = "") -> str:
    """Map a store path and logical key to a GCS object name.

    Raises:
        ValueError: If the store path or key is empty.
    """
    if not store_path:
        raise ValueError("store path must not be empty")
    if not key:
        raise ValueError("key must not be empty")
    return f"{store_path}{SEPARATOR}{key}{suffix}"


def store_prefix(store_path: str) -> str:
    """Listing prefix covering every object of a store."""
    return f"{store_path}{SEPARATOR}"


def is_record_name(name: str, store_path: str) -> bool:
    """Return True if ``name`` is a live record of the given store."""
    return name.startswith(store_path) and name.endswith(RECORD_SUFFIXES)


def strip_store_path(name: str, store_path: str) -> str:
    """Remove the store path and its separator from an object name."""
    return name[len(store_path) + len(SEPARATOR):]
