"""S3 backing store using aiobotocore."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

from botocore.exceptions import ClientError  # type: ignore[import-untyped]

from storage_area._internal.async_s3_client import AsyncS3Client, create_async_s3_client
from storage_area._internal.s3_helpers import is_not_found
from storage_area.backing_store import BackingStore
from storage_area.types import (
    KeyListPage,
    ListedKey,
    ListOptions,
    Payload,
    PayloadFormat,
    S3StoreConfig,
)

logger = logging.getLogger(__name__)


class S3BackingStore(BackingStore):
    """Stores each key as one S3 object under a fixed prefix.

    Usage:
        async with create_s3_backing_store(config) as store:
            area = StorageArea(store)
            await area.set(["user", 42], {"name": "Ada"})

    Expiration options are accepted and ignored; use bucket lifecycle
    rules for expiry on S3. Errors other than "not found" on get() are
    raised as botocore ClientError unmodified.
    """

    def __init__(self, s3: AsyncS3Client, bucket: str, prefix: str = "") -> None:
        """Initialize store (use create_s3_backing_store() to manage the client)."""
        self._s3 = s3
        self._bucket = bucket
        self._prefix = prefix

    async def put(
        self, key: str, payload: Payload, options: Optional[Mapping[str, Any]] = None
    ) -> None:
        if isinstance(payload, str):
            body = payload.encode("utf-8")
            content_type = "application/json"
        else:
            body = payload
            content_type = "application/octet-stream"
        await self._s3.put_object(self._bucket, self._object_key(key), body, content_type)

    async def get(self, key: str, payload_format: PayloadFormat = "text") -> Optional[Payload]:
        try:
            response = await self._s3.get_object(self._bucket, self._object_key(key))
        except ClientError as e:  # type: ignore[misc]
            if is_not_found(e):  # type: ignore[misc]
                return None
            raise

        if payload_format == "text":
            return response["body"].decode("utf-8")
        return response["body"]

    async def delete(self, key: str) -> None:
        await self._s3.delete_object(self._bucket, self._object_key(key))

    async def list(self, options: Optional[ListOptions] = None) -> KeyListPage:
        options = options or {}
        output = await self._s3.list_objects_v2(
            self._bucket,
            prefix=self._object_key(options.get("prefix", "")),
            continuation_token=options.get("cursor"),
            max_keys=options.get("limit"),
        )
        logger.debug(
            f"Listed {len(output['contents'])} objects from s3://{self._bucket}/{self._prefix}"
            f" (truncated={output['is_truncated']})"
        )

        keys = [ListedKey(name=obj["key"][len(self._prefix) :]) for obj in output["contents"]]
        if not output["is_truncated"]:
            return {"keys": keys, "complete": True}
        return {"keys": keys, "complete": False, "cursor": output["next_continuation_token"]}

    def _object_key(self, key: str) -> str:
        """Generate S3 object key from a backing-store key."""
        return f"{self._prefix}{key}"


@asynccontextmanager
async def create_s3_backing_store(config: S3StoreConfig) -> AsyncIterator[S3BackingStore]:
    """Create an S3 backing store with managed client lifecycle.

    Args:
        config: S3 bucket, region, prefix and client overrides

    Yields:
        S3BackingStore ready for use

    Example:
        async with create_s3_backing_store(config) as store:
            area = StorageArea(store, packer=BinaryPacker())
    """
    async with create_async_s3_client(config) as s3:
        yield S3BackingStore(s3, config.s3_bucket, config.s3_prefix)
