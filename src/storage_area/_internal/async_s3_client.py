"""Thin aiobotocore wrapper covering the four S3 calls a backing store needs.

This client is not part of the public API and should only be used internally.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Dict, Optional

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client as AioS3Client

from aiobotocore.session import get_session
from botocore.config import Config as BotocoreConfig  # type: ignore[import-untyped]

from storage_area._internal.s3_helpers import (
    GetObjectOutput,
    ListObjectsV2Output,
    ListObjectsV2Outputs,
)
from storage_area.types import S3StoreConfig

OCTET_STREAM = "application/octet-stream"


class AsyncS3Client:
    """Narrow async view over an aiobotocore S3 client.

    Every response is converted to one of the TypedDicts in s3_helpers, so
    callers never touch botocore's untyped response mappings. Object bodies
    are read in full and the stream released before get_object() returns.
    """

    def __init__(self, s3_client: "AioS3Client") -> None:
        self._s3: "AioS3Client" = s3_client

    async def get_object(self, bucket: str, key: str) -> GetObjectOutput:
        """Fetch one object with its body already read.

        Raises:
            ClientError: NoSuchKey when absent, or any other S3 failure
        """
        response = await self._s3.get_object(Bucket=bucket, Key=key)
        stream = response.get("Body")
        if stream is None:
            content = b""
        else:
            async with stream as body:
                content = await body.read()
        return {"body": content}

    async def put_object(
        self, bucket: str, key: str, body: bytes, content_type: Optional[str] = None
    ) -> None:
        await self._s3.put_object(
            Bucket=bucket, Key=key, Body=body, ContentType=content_type or OCTET_STREAM
        )

    async def delete_object(self, bucket: str, key: str) -> None:
        # S3 answers 204 for missing keys too
        await self._s3.delete_object(Bucket=bucket, Key=key)

    async def list_objects_v2(
        self,
        bucket: str,
        prefix: str,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> ListObjectsV2Output:
        """Fetch one page of object keys under prefix."""
        params: Dict[str, object] = {"Bucket": bucket, "Prefix": prefix}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        if max_keys:
            params["MaxKeys"] = max_keys
        response = await self._s3.list_objects_v2(**params)  # type: ignore[arg-type]
        return ListObjectsV2Outputs.from_aiobotocore(response)  # type: ignore[arg-type]


def client_kwargs(config: S3StoreConfig) -> Dict[str, object]:
    """Translate a store config into aiobotocore create_client() arguments."""
    kwargs: Dict[str, object] = {"region_name": config.s3_region}
    overrides = config.overrides
    if overrides is None:
        return kwargs

    if overrides.endpoint_url is not None:
        kwargs["endpoint_url"] = overrides.endpoint_url
    if overrides.credentials is not None:
        kwargs["aws_access_key_id"] = overrides.credentials.aws_access_key_id
        kwargs["aws_secret_access_key"] = overrides.credentials.aws_secret_access_key
    if overrides.force_path_style:
        kwargs["config"] = BotocoreConfig(s3={"addressing_style": "path"})
    return kwargs


@asynccontextmanager
async def create_async_s3_client(config: S3StoreConfig) -> AsyncIterator[AsyncS3Client]:
    """Open an aiobotocore S3 client for the lifetime of the context.

    Example:
        async with create_async_s3_client(config) as s3:
            page = await s3.list_objects_v2(config.s3_bucket, config.s3_prefix)
    """
    session = get_session()
    async with session.create_client("s3", **client_kwargs(config)) as client:  # type: ignore[arg-type,call-overload,misc]
        yield AsyncS3Client(client)  # type: ignore[misc]
