"""Configuration loading and Pydantic models for the GCS backing store."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BUFFER_SIZE = 1024 * 1024


class StoreSpec(BaseModel):
    """Connection fields of a bucket store.

    ``store_path`` and ``store_id`` are alternative names for the store
    namespace; ``store_path`` wins when both are given.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    bucket: str = Field(min_length=1)
    location: str = Field(min_length=1)
    store_path: str | None = None
    store_id: str | None = None
    project_id: str | None = None
    # Pre-built gcloud-aio Storage client or ObjectStore, bypassing
    # Application Default Credentials.
    client: Any = None


class BlobConfig(BaseModel):
    """Engine flags describing how it should drive the blobs."""

    sync_blob: bool = True
    in_place: bool = False
    lock_blob: bool = True


class StoreConfig(BaseModel):
    """Options handed to the engine's default-store bootstrap."""

    model_config = ConfigDict(extra="allow")

    opts: dict[str, Any] | None = None
    config: BlobConfig = Field(default_factory=BlobConfig)
    default_serializer: str = "FressianSerializer"
    buffer_size: int = DEFAULT_BUFFER_SIZE


def _parse_store(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize dashed YAML keys (store-path) to field names (store_path)."""
    return {key.replace("-", "_"): value for key, value in data.items()}


def load_spec(path: Path) -> StoreSpec:
    """Load a StoreSpec from a YAML file.

    The spec may be the whole document or a ``store`` section of it.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A StoreSpec validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If required fields are missing.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    section = raw.get("store")
    if isinstance(section, dict):
        raw = section
    return StoreSpec(**_parse_store(raw))
