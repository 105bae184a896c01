# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Artifact - Hashing, compression, segmentation and the manifest.
"""

from dbsnap.artifact.hasher import compute_checksum

from dbsnap.artifact.compressor import (
    compress_file,
    decompress_file,
    codec_extension,
)

from dbsnap.artifact.segmenter import (
    split_file,
    concatenate_parts,
    part_filename,
    parts_needed,
    SegmentedPart,
    MAX_PARTS,
)

from dbsnap.artifact.manifest import (
    build_artifact,
    write_manifest,
    read_manifest,
    artifact_to_dict,
    artifact_from_dict,
    BackupArtifact,
    PartDescriptor,
    MANIFEST_FILENAME,
)

__all__ = [
    # Hasher
    "compute_checksum",
    # Compressor
    "compress_file",
    "decompress_file",
    "codec_extension",
    # Segmenter
    "split_file",
    "concatenate_parts",
    "part_filename",
    "parts_needed",
    "SegmentedPart",
    "MAX_PARTS",
    # Manifest
    "build_artifact",
    "write_manifest",
    "read_manifest",
    "artifact_to_dict",
    "artifact_from_dict",
    "BackupArtifact",
    "PartDescriptor",
    "MANIFEST_FILENAME",
]
