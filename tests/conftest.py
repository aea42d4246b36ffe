"""Shared pytest fixtures for kv-gcs tests.

Adapters run on a ``BlockingRunner`` against a ``MemoryObjectStore`` so no
GCS credentials or network access are required. Each test gets its own
runner, stopped at teardown.
"""

import pytest

from kv_gcs.execution import BlockingRunner
from kv_gcs.storage.memory import MemoryObjectStore
from kv_gcs.store import CloudStorageBucket


@pytest.fixture
def runner():
    """A runner whose loop thread is stopped after the test."""
    runner = BlockingRunner(name="kv-gcs-test-runner")
    yield runner
    runner.close()


@pytest.fixture
def objects() -> MemoryObjectStore:
    """An empty in-memory bucket that already exists."""
    return MemoryObjectStore(bucket_name="test-bucket")


@pytest.fixture
def bucket_store(objects, runner) -> CloudStorageBucket:
    """A store adapter for the store path 'test-store'."""
    return CloudStorageBucket(objects, "US-EAST1", "test-store", runner)
