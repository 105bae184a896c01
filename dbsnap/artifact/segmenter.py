# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Segmenter - Split a compressed artifact into fixed-size parts.

Parts are named {artifact}.001, {artifact}.002, ... so that a plain
`cat artifact.*` reassembles them in order.
"""

from pathlib import Path
from typing import List, NamedTuple, Sequence

import aiofiles
import structlog

from dbsnap.exceptions import SegmentationFailed

logger = structlog.get_logger()

# Three-digit sequence suffix
MAX_PARTS = 999

COPY_CHUNK_SIZE = 1024 * 1024


class SegmentedPart(NamedTuple):
    """One part file written to disk."""

    path: Path
    size: int


def part_filename(artifact_name: str, sequence: int) -> str:
    """
    Name of part number `sequence` (1-based) of an artifact.

    Raises:
        ValueError: If sequence is outside 1..MAX_PARTS
    """
    if not 1 <= sequence <= MAX_PARTS:
        raise ValueError(f"Part sequence must be between 1 and {MAX_PARTS}, got {sequence}")
    return f"{artifact_name}.{sequence:03d}"


def parts_needed(size: int, chunk_size: int) -> int:
    """Number of parts a file of `size` bytes splits into (at least one)."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return max(1, -(-size // chunk_size))


async def split_file(
    source: Path,
    chunk_size: int,
    destination_dir: Path,
) -> List[SegmentedPart]:
    """
    Split source into parts of exactly chunk_size bytes (the last may be smaller).

    Each part is written, flushed and closed before the next chunk is
    read, so at most one chunk is held in memory.

    Args:
        source: File to split
        chunk_size: Size of every part except the last
        destination_dir: Directory receiving the part files

    Returns:
        Parts in sequence order

    Raises:
        ValueError: If chunk_size is not positive
        SegmentationFailed: If the file needs more than MAX_PARTS parts,
            or a part cannot be read or written
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    try:
        total_size = source.stat().st_size
    except OSError as e:
        raise SegmentationFailed(
            f"Cannot stat {source}: {e}",
            details={"source": str(source)},
        ) from e

    expected_parts = parts_needed(total_size, chunk_size)
    if expected_parts > MAX_PARTS:
        raise SegmentationFailed(
            f"{source.name} needs {expected_parts} parts, at most {MAX_PARTS} are supported",
            details={"size": total_size, "chunk_size": chunk_size},
        )

    parts: List[SegmentedPart] = []

    try:
        destination_dir.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(source, "rb") as src:
            sequence = 0
            while True:
                chunk = await src.read(chunk_size)
                if not chunk:
                    break

                sequence += 1
                part_path = destination_dir / part_filename(source.name, sequence)

                async with aiofiles.open(part_path, "wb") as dst:
                    await dst.write(chunk)
                    await dst.flush()

                parts.append(SegmentedPart(part_path, len(chunk)))

                logger.debug(
                    "part_written",
                    part=part_path.name,
                    size=len(chunk),
                )

    except OSError as e:
        raise SegmentationFailed(
            f"Failed to split {source.name}: {e}",
            details={"source": str(source), "parts_written": len(parts)},
        ) from e

    logger.info(
        "artifact_split",
        source=source.name,
        total_size=total_size,
        chunk_size=chunk_size,
        parts=len(parts),
    )

    return parts


async def concatenate_parts(parts: Sequence[Path], destination: Path) -> int:
    """
    Concatenate part files in the given order into destination.

    Returns:
        Number of bytes written
    """
    written = 0
    async with aiofiles.open(destination, "wb") as dst:
        for part in parts:
            async with aiofiles.open(part, "rb") as src:
                while True:
                    chunk = await src.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    await dst.write(chunk)
                    written += len(chunk)

    return written
