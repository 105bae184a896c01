# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Remote Store - Object store client used by the upload coordinator.

The coordinator only needs two operations, upload and delete, so any
object store can be plugged in through the RemoteStore protocol. The
S3 implementation talks to AWS S3 or any S3-compatible endpoint.
"""

import base64
import hashlib
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Protocol

import aiofiles
import structlog

from dbsnap.config import BackupConfig, DEFAULT_MAX_OBJECT_SIZE
from dbsnap.exceptions import S3OperationError

logger = structlog.get_logger()


class RemoteStore(Protocol):
    """Minimal object store interface."""

    async def upload(self, local_path: Path, remote_name: str, remote_folder: str) -> str:
        """Upload a file as {remote_folder}/{remote_name}; return its URL."""
        ...

    async def delete(self, remote_key: str) -> None:
        """Delete the object stored under {remote_folder}/{remote_name}."""
        ...


def remote_key(remote_folder: str, remote_name: str) -> str:
    """Object key of remote_name inside remote_folder."""
    return f"{remote_folder.strip('/')}/{remote_name}"


class S3ObjectStore:
    """
    S3 implementation of RemoteStore backed by aiobotocore.

    Credentials are passed in explicitly; when omitted, the standard
    AWS credential chain applies. Use as an async context manager, which
    owns the underlying client:

        async with S3ObjectStore.from_config(config) as store:
            url = await store.upload(path, "manifest.json", folder)
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        max_object_size: int = DEFAULT_MAX_OBJECT_SIZE,
        session: Any = None,
    ):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.max_object_size = max_object_size
        self._aws_access_key_id = aws_access_key_id
        self._aws_secret_access_key = aws_secret_access_key
        self._session = session
        self._client: Any = None
        self._exit_stack: AsyncExitStack | None = None

    @classmethod
    def from_config(cls, config: BackupConfig, session: Any = None) -> "S3ObjectStore":
        """Build a store from the remote settings of a BackupConfig."""
        return cls(
            config.bucket,
            region=config.region,
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            max_object_size=config.max_object_size,
            session=session,
        )

    async def __aenter__(self) -> "S3ObjectStore":
        from aiobotocore.session import get_session

        session = self._session or get_session()
        client_kwargs: dict = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self._aws_access_key_id:
            client_kwargs["aws_access_key_id"] = self._aws_access_key_id
            client_kwargs["aws_secret_access_key"] = self._aws_secret_access_key

        self._exit_stack = AsyncExitStack()
        self._client = await self._exit_stack.enter_async_context(
            session.create_client("s3", **client_kwargs)
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
        self._client = None
        self._exit_stack = None

    def _require_client(self) -> Any:
        if self._client is None:
            raise S3OperationError(
                "S3ObjectStore used outside of its async context",
                details={"bucket": self.bucket},
            )
        return self._client

    async def upload(self, local_path: Path, remote_name: str, remote_folder: str) -> str:
        """
        Upload a file in a single request.

        The object's MD5 is sent as Content-MD5 so the store rejects any
        body corrupted in transit.

        Returns:
            s3:// URL of the stored object
        """
        client = self._require_client()
        key = remote_key(remote_folder, remote_name)

        size = local_path.stat().st_size
        if size > self.max_object_size:
            raise S3OperationError(
                f"{remote_name} is {size} bytes, larger than the store limit of "
                f"{self.max_object_size}",
                details={"key": key, "size": size},
            )

        async with aiofiles.open(local_path, "rb") as f:
            body = await f.read()

        content_md5 = base64.b64encode(hashlib.md5(body).digest()).decode("ascii")

        await client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentMD5=content_md5,
        )

        logger.debug("object_uploaded", bucket=self.bucket, key=key, size=size)

        return f"s3://{self.bucket}/{key}"

    async def delete(self, remote_key: str) -> None:
        """Delete an object by key."""
        client = self._require_client()
        await client.delete_object(Bucket=self.bucket, Key=remote_key)
        logger.debug("object_deleted", bucket=self.bucket, key=remote_key)
