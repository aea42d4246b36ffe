"""Connecting a GCS bucket store and wiring it into the engine.

A store spec names the bucket, its location and the store path::

    {"bucket": "kv-demo", "location": "US-EAST1", "store_path": "test-store"}

``connect_bucket_store`` validates the spec before touching the network,
builds the backing store and hands it to the engine's default-store
bootstrap together with the engine options.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from gcloud.aio.storage import Storage
from pydantic import ValidationError

from kv_gcs.config import StoreConfig, StoreSpec
from kv_gcs.errors import MisconfiguredStore
from kv_gcs.execution import BlockingRunner
from kv_gcs.logging_config import store_context
from kv_gcs.storage.backend import ObjectStore
from kv_gcs.storage.gcs import GCSObjectStore
from kv_gcs.store import CloudStorageBucket

logger = logging.getLogger(__name__)

# Engine bootstrap: receives the backing store and the engine options.
Bootstrap = Callable[[CloudStorageBucket, StoreConfig], Any]


@dataclass
class ConnectedStore:
    """Backing store plus engine options, returned without an engine bootstrap."""

    backing: CloudStorageBucket
    config: StoreConfig


def validate_spec(spec: StoreSpec | Mapping[str, Any]) -> StoreSpec:
    """Validate connection fields.

    Mappings may use dashed keys (``store-path``) as well as field names.

    Raises:
        MisconfiguredStore: If bucket, location or the store path is missing.
    """
    if not isinstance(spec, StoreSpec):
        try:
            spec = StoreSpec(**{str(k).replace("-", "_"): v for k, v in spec.items()})
        except ValidationError as e:
            raise MisconfiguredStore(f"Invalid store spec: {e}") from e
    spec_to_store_path(spec)
    return spec


def spec_to_store_path(spec: StoreSpec) -> str:
    """Return the store namespace from ``store_path`` or ``store_id``.

    Raises:
        MisconfiguredStore: If neither is set.
    """
    store_path = spec.store_path or spec.store_id
    if not store_path:
        raise MisconfiguredStore(
            "expected store path in store spec as store_path or store_id"
        )
    return store_path


def cloud_storage_client(spec: StoreSpec) -> ObjectStore:
    """Build the object store for a spec.

    A supplied ``client`` is used as is when it already is an object store,
    or wrapped when it is a gcloud-aio ``Storage`` client. Otherwise a new
    client using Application Default Credentials is created lazily.
    """
    client = spec.client
    project = spec.project_id or ""
    if client is None:
        return GCSObjectStore(spec.bucket, project=project)
    if isinstance(client, Storage):
        return GCSObjectStore(spec.bucket, project=project, client=client)
    return client


def _backing(spec: StoreSpec, runner: BlockingRunner) -> CloudStorageBucket:
    return CloudStorageBucket(
        cloud_storage_client(spec),
        spec.location,
        spec_to_store_path(spec),
        runner,
    )


def _sync_opt(opts: Mapping[str, Any] | None) -> bool:
    return bool((opts or {}).get("sync", False))


def default_bootstrap(backing: CloudStorageBucket, config: StoreConfig):
    """Ensure the bucket exists and return a ``ConnectedStore``.

    Blocks when ``opts["sync"]`` is set, otherwise returns an awaitable.
    """
    if _sync_opt(config.opts):
        backing.create_store(sync=True)
        return ConnectedStore(backing, config)

    async def _connect() -> ConnectedStore:
        await backing.create_store()
        return ConnectedStore(backing, config)

    return _connect()


def connect_bucket_store(
    spec: StoreSpec | Mapping[str, Any],
    *,
    opts: Mapping[str, Any] | None = None,
    bootstrap: Bootstrap | None = None,
    **params: Any,
):
    """Connect a bucket store and bootstrap it with the engine.

    Args:
        spec: Connection fields, see ``StoreSpec``.
        opts: Engine call options; ``{"sync": True}`` selects blocking calls.
        bootstrap: The engine's default-store bootstrap. Defaults to
            ``default_bootstrap``.
        **params: Overrides for ``StoreConfig`` fields such as
            ``default_serializer`` or ``buffer_size``.

    Returns:
        Whatever the bootstrap returns.

    Raises:
        MisconfiguredStore: If the spec is incomplete. Raised before any
            network call.
    """
    spec = validate_spec(spec)
    params.pop("config", None)
    config = StoreConfig(opts=dict(opts) if opts is not None else None, **params)
    backing = _backing(spec, BlockingRunner())
    logger.info(
        "Connecting bucket store %s/%s",
        spec.bucket,
        backing.store_path,
        extra=store_context(spec.bucket, backing.store_path),
    )
    return (bootstrap or default_bootstrap)(backing, config)


connect_store = connect_bucket_store


def release(store: Any, *, sync: bool = False):
    """Close the client of a connected store and stop its runner."""
    backing: CloudStorageBucket = getattr(store, "backing", store)
    runner = backing.runner
    if sync:
        runner.run(backing.close_client())
        runner.close()
        logger.info(
            "Released bucket store %s",
            backing.store_path,
            extra=store_context(backing.bucket, backing.store_path),
        )
        return None

    async def _release() -> None:
        await runner.run_async(backing.close_client())
        runner.close()
        logger.info(
            "Released bucket store %s",
            backing.store_path,
            extra=store_context(backing.bucket, backing.store_path),
        )

    return _release()


def delete_store(
    spec: StoreSpec | Mapping[str, Any], *, opts: Mapping[str, Any] | None = None
):
    """Delete every record of the store described by ``spec``.

    Runs blocking unless ``opts`` sets ``sync`` to False, in which case an
    awaitable is returned. The client is closed afterwards even when the
    bucket is missing or a batch fails.
    """
    spec = validate_spec(spec)
    complete_opts = {"sync": True, **(opts or {})}
    runner = BlockingRunner()
    backing = _backing(spec, runner)
    if _sync_opt(complete_opts):
        try:
            return backing.delete_store(sync=True)
        finally:
            try:
                runner.run(backing.close_client())
            finally:
                runner.close()

    async def _delete() -> None:
        try:
            await backing.delete_store()
        finally:
            try:
                await runner.run_async(backing.close_client())
            finally:
                runner.close()

    return _delete()
