"""Tests for connecting, releasing and deleting bucket stores.

A MemoryObjectStore is supplied as the spec's client so connection helpers
run end to end without GCS.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from gcloud.aio.storage import Storage

from kv_gcs.config import StoreConfig, StoreSpec
from kv_gcs.connection import (
    ConnectedStore,
    cloud_storage_client,
    connect_bucket_store,
    connect_store,
    delete_store,
    release,
    spec_to_store_path,
    validate_spec,
)
from kv_gcs.errors import MisconfiguredStore
from kv_gcs.storage.gcs import GCSObjectStore
from kv_gcs.storage.memory import MemoryObjectStore
from kv_gcs.store import CloudStorageBucket


def _spec(client=None, **overrides):
    spec = {
        "bucket": "kv-demo",
        "location": "US-EAST1",
        "store_path": "test-store",
        "client": client,
    }
    spec.update(overrides)
    return spec


class TestValidateSpec:
    """Tests for validate_spec() and spec_to_store_path()."""

    @pytest.mark.parametrize("field", ["bucket", "location"])
    def test_missing_required_field(self, field):
        spec = _spec()
        del spec[field]
        with pytest.raises(MisconfiguredStore, match=field):
            validate_spec(spec)

    def test_missing_store_path(self):
        with pytest.raises(MisconfiguredStore, match="store path"):
            validate_spec(_spec(store_path=None))

    def test_dashed_keys(self):
        spec = validate_spec(
            {"bucket": "b", "location": "US", "store-id": "sid", "project-id": "p"}
        )
        assert spec.store_id == "sid"
        assert spec.project_id == "p"

    def test_store_path_wins_over_store_id(self):
        spec = StoreSpec(bucket="b", location="US", store_path="path", store_id="id")
        assert spec_to_store_path(spec) == "path"

    def test_store_id_fallback(self):
        spec = StoreSpec(bucket="b", location="US", store_id="id")
        assert spec_to_store_path(spec) == "id"

    def test_fails_before_any_client_is_built(self):
        with patch("kv_gcs.storage.gcs.Storage") as mock_storage_cls:
            with pytest.raises(MisconfiguredStore):
                connect_bucket_store({"bucket": "b", "store_path": "s"})
            mock_storage_cls.assert_not_called()


class TestCloudStorageClient:
    """Tests for cloud_storage_client()."""

    def test_default_client(self):
        store = cloud_storage_client(StoreSpec(**_spec(project_id="proj")))

        assert isinstance(store, GCSObjectStore)
        assert store.bucket_name == "kv-demo"
        assert store.project == "proj"
        assert store._client is None

    def test_wraps_gcloud_storage_client(self):
        client = MagicMock(spec=Storage)
        store = cloud_storage_client(StoreSpec(**_spec(client=client)))

        assert isinstance(store, GCSObjectStore)
        assert store.client is client

    def test_object_store_passthrough(self):
        objects = MemoryObjectStore()
        assert cloud_storage_client(StoreSpec(**_spec(client=objects))) is objects


class TestConnect:
    """Tests for connect_bucket_store()."""

    def test_sync_connect_creates_bucket(self):
        objects = MemoryObjectStore(bucket_name="kv-demo", bucket_exists=False)

        store = connect_bucket_store(_spec(objects), opts={"sync": True})

        assert isinstance(store, ConnectedStore)
        assert isinstance(store.backing, CloudStorageBucket)
        assert store.backing.store_path == "test-store"
        assert store.backing.location == "US-EAST1"
        assert objects.location == "US-EAST1"
        assert store.config.opts == {"sync": True}
        release(store, sync=True)

    async def test_async_connect(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")

        store = await connect_store(_spec(objects))

        assert objects.calls["bucket_exists"] == 1
        assert objects.calls["create_bucket"] == 0
        await release(store)

    def test_params_override_config(self):
        bootstrap = MagicMock(return_value="engine-store")

        result = connect_bucket_store(
            _spec(MemoryObjectStore()),
            bootstrap=bootstrap,
            default_serializer="CBORSerializer",
            buffer_size=2048,
            config={"in_place": True},
        )

        assert result == "engine-store"
        backing, config = bootstrap.call_args[0]
        assert isinstance(backing, CloudStorageBucket)
        assert isinstance(config, StoreConfig)
        assert config.default_serializer == "CBORSerializer"
        assert config.buffer_size == 2048
        assert config.config.in_place is False
        release(backing, sync=True)

    def test_store_usable_after_connect(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")
        store = connect_bucket_store(_spec(objects), opts={"sync": True})
        backing = store.backing

        blob = backing.create_blob("a.ksv", sync=True)
        blob.write_header(b"h" * 20, sync=True)
        blob.write_meta(b"m", sync=True)
        blob.write_value(b"v", 1, sync=True)
        blob.flush(sync=True)

        assert backing.keys(sync=True) == {"a.ksv"}
        release(store, sync=True)


class TestRelease:
    """Tests for release()."""

    def test_sync_release_closes_client_and_runner(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")
        store = connect_bucket_store(_spec(objects), opts={"sync": True})

        assert release(store, sync=True) is None

        assert objects.closed is True
        assert store.backing.runner.running is False

    async def test_async_release(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")
        store = await connect_bucket_store(_spec(objects))

        await release(store)

        assert objects.closed is True
        assert store.backing.runner.running is False


class TestDeleteStore:
    """Tests for the module-level delete_store()."""

    async def _seed(self, objects, count):
        for i in range(count):
            await objects.put(f"test-store/{i}.ksv", b"x")

    async def test_deletes_records_then_noop(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")
        await self._seed(objects, 3)
        await objects.put("test-store/readme.txt", b"x")

        delete_store(_spec(objects))
        assert objects.names == ["test-store/readme.txt"]
        assert objects.closed is True

        objects.calls.clear()
        delete_store(_spec(objects))
        assert objects.calls["delete_many"] == 0

    async def test_async_mode(self):
        objects = MemoryObjectStore(bucket_name="kv-demo")
        await self._seed(objects, 2)

        await delete_store(_spec(objects), opts={"sync": False})

        assert objects.names == []

    def test_missing_bucket(self):
        objects = MemoryObjectStore(bucket_name="kv-demo", bucket_exists=False)
        assert delete_store(_spec(objects)) is None

    def test_requires_store_path(self):
        with pytest.raises(MisconfiguredStore):
            delete_store(_spec(MemoryObjectStore(), store_path=None))


def _http_error(status: int, message: str) -> Exception:
    """Create a mock error mimicking aiohttp.ClientResponseError."""
    exc = Exception(message)
    exc.status = status  # type: ignore[attr-defined]
    return exc


class TestDeleteStoreClosesClient:
    """delete_store() closes the client it creates on every exit path."""

    @pytest.fixture
    def client(self):
        client = AsyncMock()
        with patch("kv_gcs.storage.gcs.Storage", return_value=client):
            yield client

    def test_bucket_missing(self, client):
        client.get_bucket_metadata.side_effect = _http_error(404, "Not Found")

        assert delete_store(_spec()) is None

        client.list_objects.assert_not_awaited()
        client.close.assert_awaited_once()

    def test_failed_batch(self, client):
        client.get_bucket_metadata.return_value = {"name": "kv-demo"}
        client.list_objects.return_value = {"items": [{"name": "test-store/a.ksv"}]}
        client.delete.side_effect = _http_error(503, "Service Unavailable")

        with pytest.raises(Exception, match="Service Unavailable"):
            delete_store(_spec())

        client.close.assert_awaited_once()

    async def test_failed_batch_async(self, client):
        client.get_bucket_metadata.return_value = {"name": "kv-demo"}
        client.list_objects.return_value = {"items": [{"name": "test-store/a.ksv"}]}
        client.delete.side_effect = _http_error(503, "Service Unavailable")

        with pytest.raises(Exception, match="Service Unavailable"):
            await delete_store(_spec(), opts={"sync": False})

        client.close.assert_awaited_once()

    def test_success_closes_once(self, client):
        client.get_bucket_metadata.return_value = {"name": "kv-demo"}
        client.list_objects.return_value = {"items": [{"name": "test-store/a.ksv"}]}

        delete_store(_spec())

        client.delete.assert_awaited_once_with("kv-demo", "test-store/a.ksv")
        client.close.assert_awaited_once()
