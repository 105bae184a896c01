# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Store Tests - S3ObjectStore and the full pipeline against a local
moto server.
"""

import socket
from pathlib import Path

import pytest
import pytest_asyncio

from conftest import RUN_STARTED_AT, make_dump_producer, random_bytes
from dbsnap.config import BackupConfig
from dbsnap.core import run_backup
from dbsnap.exceptions import S3OperationError
from dbsnap.upload import S3ObjectStore

BUCKET = "dbsnap-test"
CREDENTIALS = {"aws_access_key_id": "testing", "aws_secret_access_key": "testing"}


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="module")
def moto_endpoint():
    """Run a moto S3 server for this module."""
    from moto.server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=port)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


@pytest_asyncio.fixture
async def s3_client(moto_endpoint: str):
    """Raw client on the moto server with an empty test bucket."""
    from aiobotocore.session import get_session

    session = get_session()
    async with session.create_client(
        "s3",
        region_name="us-east-1",
        endpoint_url=moto_endpoint,
        **CREDENTIALS,
    ) as client:
        await client.create_bucket(Bucket=BUCKET)
        yield client

        # Drop the bucket so the next test starts clean
        listing = await client.list_objects_v2(Bucket=BUCKET)
        for obj in listing.get("Contents", []):
            await client.delete_object(Bucket=BUCKET, Key=obj["Key"])
        await client.delete_bucket(Bucket=BUCKET)


async def _keys(client) -> list:
    listing = await client.list_objects_v2(Bucket=BUCKET)
    return sorted(obj["Key"] for obj in listing.get("Contents", []))


def _store(endpoint: str, **kwargs) -> S3ObjectStore:
    return S3ObjectStore(BUCKET, endpoint_url=endpoint, **CREDENTIALS, **kwargs)


@pytest.mark.asyncio
async def test_upload_and_delete_object(temp_dir: Path, moto_endpoint: str, s3_client):
    path = temp_dir / "backup.sql.zst.001"
    path.write_bytes(b"part bytes")

    async with _store(moto_endpoint) as store:
        url = await store.upload(path, path.name, "databaseBackups/2026/Month-10/backup-x")

        key = "databaseBackups/2026/Month-10/backup-x/backup.sql.zst.001"
        assert url == f"s3://{BUCKET}/{key}"

        response = await s3_client.get_object(Bucket=BUCKET, Key=key)
        async with response["Body"] as stream:
            assert await stream.read() == b"part bytes"

        await store.delete(key)

    assert await _keys(s3_client) == []


@pytest.mark.asyncio
async def test_upload_refuses_objects_over_the_size_limit(
    temp_dir: Path, moto_endpoint: str, s3_client
):
    path = temp_dir / "too-big"
    path.write_bytes(b"x" * 101)

    async with _store(moto_endpoint, max_object_size=100) as store:
        with pytest.raises(S3OperationError):
            await store.upload(path, path.name, "folder")

    assert await _keys(s3_client) == []


@pytest.mark.asyncio
async def test_store_requires_context(temp_dir: Path):
    path = temp_dir / "part"
    path.write_bytes(b"x")

    with pytest.raises(S3OperationError):
        await S3ObjectStore(BUCKET).upload(path, "part", "folder")


@pytest.mark.asyncio
async def test_full_backup_to_s3(temp_dir: Path, moto_endpoint: str, s3_client):
    """Default store path: run_backup builds its own S3ObjectStore from config."""
    config = BackupConfig(
        db_name="shop",
        bucket=BUCKET,
        endpoint_url=moto_endpoint,
        workspace_root=temp_dir / "work",
        part_size=4096,
        upload_retry_delay=0,
        **CREDENTIALS,
    )

    result = await run_backup(
        config,
        dump_producer=make_dump_producer(random_bytes(10_000)),
        now=RUN_STARTED_AT,
    )

    folder = "databaseBackups/2026/Month-10/backup-2026-10-19T02-00-00-123Z"
    assert result.remote_folder == folder
    assert result.manifest_url == f"s3://{BUCKET}/{folder}/manifest.json"

    expected = [f"{folder}/{part.filename}" for part in result.artifact.parts]
    expected.append(f"{folder}/manifest.json")
    assert await _keys(s3_client) == sorted(expected)
    assert result.artifact.total_parts >= 3
