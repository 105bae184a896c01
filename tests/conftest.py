# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for dbsnap tests.

Provides an in-memory remote store with injectable failures, a fake dump
producer and test configuration helpers.
"""

import random
import tempfile
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, Generator, Iterable, List

import pytest

# Fixed run start used wherever a test needs to know the workspace name
RUN_STARTED_AT = datetime(2026, 10, 19, 2, 0, 0, 123000, tzinfo=UTC)
RUN_TIMESTAMP = "2026-10-19T02-00-00-123Z"


class FakeRemoteStore:
    """
    In-memory RemoteStore.

    fail_uploads maps a remote name to the number of attempts that fail
    before one succeeds (-1 fails forever). fail_deletes lists keys whose
    delete raises.
    """

    def __init__(
        self,
        fail_uploads: Dict[str, int] | None = None,
        fail_deletes: Iterable[str] = (),
    ):
        self.objects: Dict[str, bytes] = {}
        self.upload_calls: List[str] = []
        self.deleted: List[str] = []
        self.fail_uploads = dict(fail_uploads or {})
        self.fail_deletes = set(fail_deletes)

    async def upload(self, local_path: Path, remote_name: str, remote_folder: str) -> str:
        key = f"{remote_folder}/{remote_name}"
        self.upload_calls.append(remote_name)

        remaining = self.fail_uploads.get(remote_name, 0)
        if remaining != 0:
            if remaining > 0:
                self.fail_uploads[remote_name] = remaining - 1
            raise ConnectionError(f"simulated upload failure for {remote_name}")

        self.objects[key] = local_path.read_bytes()
        return f"fake://{key}"

    async def delete(self, remote_key: str) -> None:
        if remote_key in self.fail_deletes:
            raise ConnectionError(f"simulated delete failure for {remote_key}")
        self.deleted.append(remote_key)
        self.objects.pop(remote_key, None)

    def names(self) -> List[str]:
        """Remote names currently stored, without their folder."""
        return sorted(key.rsplit("/", 1)[1] for key in self.objects)


def make_dump_producer(content: bytes):
    """Dump producer that writes fixed content."""

    async def produce(settings, destination: Path) -> None:
        destination.write_bytes(content)

    return produce


def random_bytes(size: int, seed: int = 7) -> bytes:
    """Incompressible, reproducible test data."""
    return random.Random(seed).randbytes(size)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_store() -> FakeRemoteStore:
    """Remote store that always succeeds."""
    return FakeRemoteStore()


@pytest.fixture
def store_factory():
    """Build a FakeRemoteStore with injected failures."""
    return FakeRemoteStore


@pytest.fixture
def test_config(temp_dir: Path):
    """Create a test configuration with small parts and no retry delay."""
    from dbsnap.config import BackupConfig

    return BackupConfig(
        db_name="shop",
        db_host="db.internal",
        db_user="backup",
        db_password="secret",
        bucket="test-bucket",
        workspace_root=temp_dir / "work",
        part_size=4096,
        upload_retry_delay=0,
    )


def workspace_entries(config) -> List[Path]:
    """Everything left in the workspace root after a run."""
    root = Path(config.workspace_root)
    if not root.exists():
        return []
    return list(root.iterdir())
