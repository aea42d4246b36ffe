"""Google Cloud Storage capability for the backing store adapter.

Talks to a single GCS bucket via gcloud-aio-storage. Object names are
passed through unchanged; the store adapter decides the naming scheme.

Credentials are resolved via GCS Application Default Credentials
(GOOGLE_APPLICATION_CREDENTIALS, gcloud auth, metadata server) unless a
pre-built ``Storage`` client is supplied.
"""

import asyncio
import json
import logging
from collections.abc import Iterable

from gcloud.aio.storage import Storage

from kv_gcs.errors import ObjectNotFound

logger = logging.getLogger(__name__)

# Page size used when listing objects under a store path.
DEFAULT_LIST_PAGE_SIZE = 100


class GCSObjectStore:
    """Object store backed by one Google Cloud Storage bucket.

    Attributes:
        bucket_name: The GCS bucket name.
        project: The GCP project ID used for bucket creation.
        list_page_size: ``maxResults`` per listing page.
    """

    def __init__(
        self,
        bucket_name: str,
        project: str = "",
        client: Storage | None = None,
        list_page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ) -> None:
        self.bucket_name = bucket_name
        self.project = project
        self.list_page_size = list_page_size
        # A supplied client belongs to the caller and is never closed here.
        self._owns_client = client is None
        self._client: Storage | None = client

    @property
    def client(self) -> Storage:
        """The gcloud-aio-storage client, created on first use."""
        if self._client is None:
            self._client = Storage()
        return self._client

    async def close(self) -> None:
        """Close the gcloud-aio-storage client session if we own it."""
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    async def put(self, name: str, data: bytes) -> None:
        """Upload an object, replacing any existing one."""
        logger.debug("Uploading gs://%s/%s (%d bytes)", self.bucket_name, name, len(data))
        await self.client.upload(self.bucket_name, name, data)

    async def get(self, name: str) -> bytes:
        """Download a whole object.

        Raises:
            ObjectNotFound: If the object does not exist.
        """
        logger.debug("Downloading gs://%s/%s", self.bucket_name, name)
        try:
            return await self.client.download(self.bucket_name, name)
        except Exception as e:
            if _is_not_found(e):
                raise ObjectNotFound(self.bucket_name, name) from e
            raise

    async def delete(self, name: str) -> None:
        """Delete an object.

        Idempotent: GCS answers 404 for absent objects, which is treated
        as success.
        """
        try:
            await self.client.delete(self.bucket_name, name)
        except Exception as e:
            if _is_not_found(e):
                return
            raise

    async def delete_many(self, names: Iterable[str]) -> None:
        """Delete a batch of objects with concurrent requests.

        gcloud-aio-storage has no batch endpoint, so the batch is issued as
        one group of concurrent deletes. The first non-404 failure is
        re-raised after the whole batch has settled.
        """
        names = list(names)
        if not names:
            return
        results = await asyncio.gather(
            *(self.delete(name) for name in names), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def exists(self, name: str) -> bool:
        """Check if an object exists by fetching its metadata."""
        try:
            await self.client.download_metadata(self.bucket_name, name)
            return True
        except Exception as e:
            if _is_not_found(e):
                return False
            raise

    async def copy(self, src_name: str, dst_name: str) -> None:
        """Copy an object using GCS server-side copy.

        Raises:
            ObjectNotFound: If the source object does not exist.
        """
        try:
            await self.client.copy(
                self.bucket_name,
                src_name,
                self.bucket_name,
                new_name=dst_name,
            )
        except Exception as e:
            if _is_not_found(e):
                raise ObjectNotFound(self.bucket_name, src_name) from e
            raise

    async def list_names(self, prefix: str, delimiter: str = "/") -> list[str]:
        """List object names under a prefix, following page tokens."""
        names: list[str] = []
        params = {
            "prefix": prefix,
            "delimiter": delimiter,
            "maxResults": str(self.list_page_size),
        }
        while True:
            resp = await self.client.list_objects(self.bucket_name, params=params)
            names.extend(item["name"] for item in resp.get("items", []))
            token = resp.get("nextPageToken")
            if not token:
                return names
            params = {**params, "pageToken": token}

    async def bucket_exists(self) -> bool:
        """Check if the bucket exists."""
        try:
            await self.client.get_bucket_metadata(self.bucket_name)
            return True
        except Exception as e:
            if _is_not_found(e):
                return False
            raise

    async def create_bucket(self, location: str) -> None:
        """Create the bucket through the JSON API ``buckets.insert`` call.

        gcloud-aio-storage has no bucket creation helper, so the request is
        issued on the client's authenticated session.
        """
        client = self.client
        project = self.project or await client.token.get_project()
        body = json.dumps({"name": self.bucket_name, "location": location})
        headers = await client._headers()
        headers["Content-Type"] = "application/json"
        resp = await client.session.post(
            client._api_root_read,
            headers=headers,
            params={"project": project},
            data=body,
        )
        resp.raise_for_status()
        logger.info(
            "Created GCS bucket %s in %s (project=%s)", self.bucket_name, location, project
        )


def _is_not_found(exc: Exception) -> bool:
    """Check if an exception represents a 404 Not Found from GCS."""
    # gcloud-aio-storage raises aiohttp.ClientResponseError for HTTP errors
    status = getattr(exc, "status", None)
    if status == 404:
        return True
    if exc.args:
        msg = str(exc.args[0]).lower()
        if msg.startswith("404") or "not found" in msg:
            return True
    return False
