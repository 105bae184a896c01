# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Manifest - Backup artifact descriptor.

The manifest lists every part of a backup with its size and checksum.
It is uploaded last: a remote folder without a manifest is an
incomplete backup and must not be restored.

The JSON field names are read by independent restore tooling and must
not change.
"""

import json
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

import aiofiles
import structlog

from dbsnap.artifact.hasher import compute_checksum
from dbsnap.artifact.segmenter import SegmentedPart, part_filename
from dbsnap.config import ChecksumAlgorithm, CompressionCodec
from dbsnap.exceptions import ChecksumFailed, ManifestError

logger = structlog.get_logger()

MANIFEST_FILENAME = "manifest.json"


@dataclass(frozen=True)
class PartDescriptor:
    """One uploaded part of a backup artifact."""

    filename: str
    size: int
    checksum: str


@dataclass(frozen=True)
class BackupArtifact:
    """The logical backup produced by one run."""

    original_filename: str
    created_at: datetime
    parts: Tuple[PartDescriptor, ...]
    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.MD5
    compression: CompressionCodec = CompressionCodec.GZIP

    @property
    def total_size(self) -> int:
        return sum(part.size for part in self.parts)

    @property
    def total_parts(self) -> int:
        return len(self.parts)


def format_created_at(created_at: datetime) -> str:
    """ISO 8601 UTC with millisecond precision and a Z suffix."""
    utc = created_at.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def build_artifact(
    parts: Sequence[SegmentedPart],
    original_filename: str,
    created_at: datetime,
    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.MD5,
    compression: CompressionCodec = CompressionCodec.GZIP,
) -> BackupArtifact:
    """
    Checksum every part and assemble the artifact descriptor.

    Parts are hashed in order from their files on disk, which must be
    complete and closed. Part filenames are derived from the artifact
    name, so a single unsplit file is still described as `.001`.

    Args:
        parts: Part files with their sizes, in sequence order
        original_filename: Name of the compressed, pre-split artifact
        created_at: Run start time
        checksum_algorithm: Digest to record
        compression: Codec of the artifact

    Returns:
        Fully populated BackupArtifact
    """
    if not parts:
        raise ManifestError(
            "A backup artifact needs at least one part",
            details={"original_filename": original_filename},
        )

    descriptors = []
    for sequence, part in enumerate(parts, start=1):
        try:
            checksum = await compute_checksum(part.path, checksum_algorithm)
        except OSError as e:
            raise ChecksumFailed(
                f"Failed to checksum {part.path.name}: {e}",
                details={"part": str(part.path)},
            ) from e

        descriptors.append(
            PartDescriptor(
                filename=part_filename(original_filename, sequence),
                size=part.size,
                checksum=checksum,
            )
        )

    artifact = BackupArtifact(
        original_filename=original_filename,
        created_at=created_at,
        parts=tuple(descriptors),
        checksum_algorithm=ChecksumAlgorithm(checksum_algorithm),
        compression=CompressionCodec(compression),
    )

    logger.info(
        "artifact_built",
        original_filename=original_filename,
        total_parts=artifact.total_parts,
        total_size=artifact.total_size,
    )

    return artifact


def artifact_to_dict(artifact: BackupArtifact) -> Dict[str, Any]:
    """Serialize an artifact to the manifest document layout."""
    return {
        "originalFilename": artifact.original_filename,
        "totalParts": artifact.total_parts,
        "totalSize": artifact.total_size,
        "createdAt": format_created_at(artifact.created_at),
        "checksumAlgorithm": artifact.checksum_algorithm.value,
        "compression": artifact.compression.value,
        "parts": [
            {
                "filename": part.filename,
                "size": part.size,
                "checksum": part.checksum,
            }
            for part in artifact.parts
        ],
    }


def artifact_from_dict(data: Dict[str, Any]) -> BackupArtifact:
    """
    Parse a manifest document.

    Manifests without checksumAlgorithm or compression were written by
    the gzip/md5 tooling and default accordingly.

    Raises:
        ManifestError: If a field is missing or inconsistent
    """
    try:
        parts = tuple(
            PartDescriptor(
                filename=str(p["filename"]),
                size=int(p["size"]),
                checksum=str(p["checksum"]),
            )
            for p in data["parts"]
        )
        artifact = BackupArtifact(
            original_filename=str(data["originalFilename"]),
            created_at=datetime.fromisoformat(data["createdAt"]),
            parts=parts,
            checksum_algorithm=ChecksumAlgorithm(data.get("checksumAlgorithm", "md5")),
            compression=CompressionCodec(data.get("compression", "gzip")),
        )
        total_parts = int(data["totalParts"])
        total_size = int(data["totalSize"])
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestError(f"Invalid manifest: {e}") from e

    if not parts:
        raise ManifestError("Invalid manifest: no parts listed")

    if total_parts != artifact.total_parts or total_size != artifact.total_size:
        raise ManifestError(
            "Invalid manifest: totals do not match the parts list",
            details={
                "totalParts": total_parts,
                "totalSize": total_size,
                "listed_parts": artifact.total_parts,
                "listed_size": artifact.total_size,
            },
        )

    return artifact


async def write_manifest(artifact: BackupArtifact, directory: Path) -> Path:
    """
    Write manifest.json for an artifact into directory.

    Returns:
        Path to the manifest file
    """
    manifest_path = directory / MANIFEST_FILENAME
    content = json.dumps(artifact_to_dict(artifact), indent=2)

    try:
        async with aiofiles.open(manifest_path, "w", encoding="utf-8") as f:
            await f.write(content + "\n")
    except OSError as e:
        raise ManifestError(
            f"Failed to write manifest: {e}",
            details={"manifest_path": str(manifest_path)},
        ) from e

    logger.debug("manifest_written", manifest_path=str(manifest_path))

    return manifest_path


async def read_manifest(manifest_path: Path) -> BackupArtifact:
    """
    Read and parse a manifest file.

    Raises:
        ManifestError: If the file is missing, not JSON, or invalid
    """
    try:
        async with aiofiles.open(manifest_path, "r", encoding="utf-8") as f:
            content = await f.read()
    except FileNotFoundError as e:
        raise ManifestError(
            f"Manifest not found: {manifest_path}",
            details={"manifest_path": str(manifest_path)},
        ) from e
    except OSError as e:
        raise ManifestError(
            f"Failed to read manifest: {e}",
            details={"manifest_path": str(manifest_path)},
        ) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(
            f"Manifest is not valid JSON: {e}",
            details={"manifest_path": str(manifest_path)},
        ) from e

    if not isinstance(data, dict):
        raise ManifestError("Invalid manifest: expected a JSON object")

    return artifact_from_dict(data)
