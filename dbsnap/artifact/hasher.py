# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Hasher - Streaming content checksums for backup parts.
"""

import hashlib
from pathlib import Path

import aiofiles

from dbsnap.config import ChecksumAlgorithm

# Parts can be tens of megabytes; never hold more than this in memory
HASH_CHUNK_SIZE = 1024 * 1024


async def compute_checksum(
    path: Path,
    algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.MD5,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """
    Compute the hex digest of a file's contents.

    The file is streamed in chunks, so memory use is bounded by
    chunk_size regardless of the file size.

    Args:
        path: File to hash
        algorithm: Digest algorithm (md5 or sha256)
        chunk_size: Read size in bytes

    Returns:
        Hex-encoded digest

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.new(ChecksumAlgorithm(algorithm).value)

    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)

    return digest.hexdigest()
