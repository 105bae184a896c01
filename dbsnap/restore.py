# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Restore - Rebuild a database dump from a downloaded backup folder.

The folder must hold manifest.json and every part it lists. Restore:
1. Verifies every part exists with the recorded size and checksum
2. Concatenates the parts in sequence order
3. Decompresses the result into the SQL dump

Verification runs to completion and reports all problems before any
file is written.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import List

import structlog

from dbsnap.artifact.compressor import codec_extension, decompress_file
from dbsnap.artifact.hasher import compute_checksum
from dbsnap.artifact.manifest import MANIFEST_FILENAME, BackupArtifact, read_manifest
from dbsnap.artifact.segmenter import concatenate_parts, part_filename
from dbsnap.exceptions import CompressionFailed, ManifestError, RestoreError

logger = structlog.get_logger()


@dataclass
class RestoreResult:
    """Result of a restore."""

    artifact: BackupArtifact
    artifact_path: Path
    dump_path: Path
    dump_size: int
    duration_seconds: float = 0.0


def dump_name_for(artifact: BackupArtifact) -> str:
    """Name of the decompressed dump, e.g. backup-....sql for backup-....sql.gz."""
    extension = codec_extension(artifact.compression)
    name = artifact.original_filename
    if name.endswith(extension):
        return name[: -len(extension)]
    return f"{name}.sql"


async def verify_backup_folder(folder: Path) -> BackupArtifact:
    """
    Check a backup folder against its manifest.

    Args:
        folder: Directory with manifest.json and the part files

    Returns:
        The parsed artifact, when every part is present and intact

    Raises:
        RestoreError: If the manifest is unusable, or any part is
            missing, misnamed, truncated or has a wrong checksum
    """
    try:
        artifact = await read_manifest(folder / MANIFEST_FILENAME)
    except ManifestError as e:
        raise RestoreError(
            f"Cannot restore from {folder}: {e.message}",
            details={"folder": str(folder), **e.details},
        ) from e

    if Path(artifact.original_filename).name != artifact.original_filename:
        raise RestoreError(
            f"Unsafe originalFilename in manifest: {artifact.original_filename!r}",
            details={"folder": str(folder)},
        )

    problems: List[str] = []

    for sequence, part in enumerate(artifact.parts, start=1):
        expected_name = part_filename(artifact.original_filename, sequence)
        if part.filename != expected_name:
            problems.append(f"{part.filename}: expected part name {expected_name}")
            continue

        part_path = folder / part.filename
        if not part_path.is_file():
            problems.append(f"{part.filename}: missing")
            continue

        size = part_path.stat().st_size
        if size != part.size:
            problems.append(f"{part.filename}: size {size}, expected {part.size}")
            continue

        actual = await compute_checksum(part_path, artifact.checksum_algorithm)
        if actual != part.checksum:
            problems.append(
                f"{part.filename}: checksum mismatch (expected {part.checksum}, got {actual})"
            )
            continue

        logger.info("part_verified", part=part.filename)

    if problems:
        logger.error("backup_verification_failed", folder=str(folder), problems=problems)
        raise RestoreError(
            "Backup verification failed",
            details={"folder": str(folder), "problems": problems},
        )

    logger.info(
        "backup_verified",
        folder=str(folder),
        total_parts=artifact.total_parts,
        total_size=artifact.total_size,
    )

    return artifact


async def restore_backup(folder: Path, output_dir: Path | None = None) -> RestoreResult:
    """
    Verify, reassemble and decompress a backup.

    Args:
        folder: Directory with manifest.json and the part files
        output_dir: Where to write the artifact and dump (default: folder)

    Returns:
        RestoreResult with the path of the restored dump

    Raises:
        RestoreError: If verification, reassembly or decompression fails
    """
    start_time = datetime.now(UTC)
    artifact = await verify_backup_folder(folder)

    output_dir = output_dir or folder
    output_dir.mkdir(parents=True, exist_ok=True)
    artifact_path = output_dir / artifact.original_filename
    dump_path = output_dir / dump_name_for(artifact)

    part_paths = [folder / part.filename for part in artifact.parts]
    written = await concatenate_parts(part_paths, artifact_path)
    if written != artifact.total_size:
        raise RestoreError(
            f"Reassembled {written} bytes, manifest lists {artifact.total_size}",
            details={"artifact_path": str(artifact_path)},
        )
    logger.info("parts_merged", artifact_path=str(artifact_path), size=written)

    try:
        dump_size = await decompress_file(artifact_path, dump_path, artifact.compression)
    except CompressionFailed as e:
        raise RestoreError(
            f"Failed to decompress {artifact.original_filename}: {e.message}",
            details={"artifact_path": str(artifact_path)},
        ) from e

    duration = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "restore_complete",
        dump_path=str(dump_path),
        dump_size=dump_size,
        duration=duration,
    )

    return RestoreResult(
        artifact=artifact,
        artifact_path=artifact_path,
        dump_path=dump_path,
        dump_size=dump_size,
        duration_seconds=duration,
    )
