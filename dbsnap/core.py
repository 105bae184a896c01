# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Core - Backup pipeline orchestrator.

One run executes, strictly in sequence:
1. Dump the database into a run-scoped workspace
2. Compress the dump
3. Split it into parts if it exceeds the part size
4. Checksum the parts and write the manifest
5. Upload the parts and then the manifest (with retry and rollback)

The workspace is removed on every exit path. Errors abort the remaining
steps and propagate to the caller unchanged; retries happen only inside
the upload coordinator.
"""

import re
import shutil
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, AsyncIterator, List

import structlog
from ulid import ULID

from dbsnap.artifact.compressor import codec_extension, compress_file
from dbsnap.artifact.manifest import (
    MANIFEST_FILENAME,
    BackupArtifact,
    build_artifact,
    format_created_at,
    write_manifest,
)
from dbsnap.artifact.segmenter import SegmentedPart, split_file
from dbsnap.config import BackupConfig
from dbsnap.dump import DumpProducer, get_dump_producer
from dbsnap.exceptions import DumpFailed, SegmentationFailed
from dbsnap.upload.coordinator import UploadCoordinator, UploadItem
from dbsnap.upload.store import RemoteStore, S3ObjectStore

logger = structlog.get_logger()


@dataclass
class BackupResult:
    """Result of a successful backup run."""

    run_id: str  # ULID
    remote_folder: str
    artifact: BackupArtifact
    manifest_url: str
    duration_seconds: float
    upload_attempts: int
    part_urls: List[str] = field(default_factory=list)


def format_timestamp(created_at: datetime) -> str:
    """ISO 8601 timestamp with ':' and '.' replaced by '-', safe for keys and paths."""
    return re.sub(r"[:.]+", "-", format_created_at(created_at))


def remote_folder_for(created_at: datetime, remote_root: str) -> str:
    """
    Remote folder of the backup started at created_at.

    Layout: {root}/{year}/Month-{month}/backup-{timestamp}
    """
    utc = created_at.astimezone(UTC)
    return (
        f"{remote_root}/{utc.year}/Month-{utc.month}/"
        f"backup-{format_timestamp(utc)}"
    )


def dump_filename(created_at: datetime) -> str:
    """Name of the uncompressed dump file."""
    return f"backup-{format_timestamp(created_at)}.sql"


async def run_backup(
    config: BackupConfig,
    *,
    store: RemoteStore | None = None,
    dump_producer: DumpProducer | None = None,
    now: datetime | None = None,
) -> BackupResult:
    """
    Run one complete backup.

    Args:
        config: Backup configuration
        store: Remote store (default: S3ObjectStore built from config)
        dump_producer: Dump producer (default: chosen by config.db_backend)
        now: Run start time (default: current UTC time)

    Returns:
        BackupResult describing the uploaded backup set

    Raises:
        DumpFailed, CompressionFailed, SegmentationFailed, ChecksumFailed,
        ManifestError, UploadExhausted: from the step that failed
    """
    run_id = str(ULID())
    created_at = (now or datetime.now(UTC)).astimezone(UTC)
    timestamp = format_timestamp(created_at)
    remote_folder = remote_folder_for(created_at, config.remote_root)
    log = logger.bind(run_id=run_id)

    # Never reuse an existing directory: it would be deleted on cleanup
    workspace = Path(config.workspace_root) / f"backup-{timestamp}"
    workspace.mkdir(parents=True, exist_ok=False)

    log.info(
        "backup_run_started",
        database=config.db_name,
        workspace=str(workspace),
        remote_folder=remote_folder,
    )

    try:
        result = await _run_pipeline(
            config,
            run_id=run_id,
            created_at=created_at,
            workspace=workspace,
            remote_folder=remote_folder,
            store=store,
            dump_producer=dump_producer or get_dump_producer(config.db_backend),
            log=log,
        )
    except Exception as e:
        log.error(
            "backup_run_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        _remove_workspace(workspace, log)

    log.info(
        "backup_run_completed",
        remote_folder=remote_folder,
        total_parts=result.artifact.total_parts,
        total_size=result.artifact.total_size,
        duration=result.duration_seconds,
    )

    return result


async def _run_pipeline(
    config: BackupConfig,
    *,
    run_id: str,
    created_at: datetime,
    workspace: Path,
    remote_folder: str,
    store: RemoteStore | None,
    dump_producer: DumpProducer,
    log: Any,
) -> BackupResult:
    """Pipeline steps; the caller owns workspace cleanup."""
    start_time = datetime.now(UTC)

    # Step 1: Dump
    dump_path = workspace / dump_filename(created_at)
    await _dump(dump_producer, config, dump_path)
    log.info("dump_written", path=dump_path.name, size=dump_path.stat().st_size)

    # Step 2: Compress
    compressed_path = dump_path.with_name(dump_path.name + codec_extension(config.compression))
    compressed_size = await compress_file(
        dump_path,
        compressed_path,
        config.compression,
        config.compression_level,
    )
    dump_path.unlink()

    # Step 3: Split only when the artifact exceeds the part size
    if compressed_size > config.part_size:
        parts = await split_file(compressed_path, config.part_size, workspace / "parts")
    else:
        parts = [SegmentedPart(compressed_path, compressed_size)]

    split_size = sum(part.size for part in parts)
    if split_size != compressed_size:
        raise SegmentationFailed(
            "Parts do not add up to the compressed artifact",
            details={"compressed_size": compressed_size, "parts_size": split_size},
        )

    # Step 4: Checksums and manifest
    artifact = await build_artifact(
        parts,
        compressed_path.name,
        created_at,
        config.checksum_algorithm,
        config.compression,
    )
    manifest_path = await write_manifest(artifact, workspace)

    # Step 5: Upload, manifest last
    items = [
        UploadItem(part.path, descriptor.filename)
        for part, descriptor in zip(parts, artifact.parts)
    ]
    async with _open_store(config, store) as remote:
        coordinator = UploadCoordinator(
            remote,
            max_attempts=config.upload_max_attempts,
            retry_delay=config.upload_retry_delay,
        )
        report = await coordinator.upload_backup(
            items,
            UploadItem(manifest_path, MANIFEST_FILENAME),
            remote_folder,
        )

    duration = (datetime.now(UTC) - start_time).total_seconds()

    return BackupResult(
        run_id=run_id,
        remote_folder=remote_folder,
        artifact=artifact,
        manifest_url=report.manifest_url,
        duration_seconds=duration,
        upload_attempts=report.attempts,
        part_urls=report.part_urls,
    )


async def _dump(dump_producer: DumpProducer, config: BackupConfig, destination: Path) -> None:
    """Run the dump producer, reporting every failure as DumpFailed."""
    try:
        await dump_producer(config.database_settings, destination)
    except DumpFailed:
        raise
    except Exception as e:
        raise DumpFailed(
            f"Database dump failed: {e}",
            details={"database": config.db_name},
        ) from e

    if not destination.exists():
        raise DumpFailed(
            "Dump producer reported success but wrote no file",
            details={"destination": str(destination)},
        )


@asynccontextmanager
async def _open_store(config: BackupConfig, store: RemoteStore | None) -> AsyncIterator[RemoteStore]:
    """Yield the injected store, or an S3 store open for the duration."""
    if store is not None:
        yield store
        return

    async with S3ObjectStore.from_config(config) as s3_store:
        yield s3_store


def _remove_workspace(workspace: Path, log: Any) -> None:
    """Delete the run workspace. Failures are logged, never raised."""
    try:
        shutil.rmtree(workspace)
        log.debug("workspace_removed", workspace=str(workspace))
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("workspace_cleanup_failed", workspace=str(workspace), error=str(e))
