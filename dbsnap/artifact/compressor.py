# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Compressor - Streaming compression of database dumps.

Dumps are compressed file-to-file at maximum effort:
1. gzip (level 9, fixed mtime) by default, so restores need only gunzip
2. zstd (level 22) as an opt-in for smaller artifacts

Neither codec needs the whole dump in memory. Compression is CPU-bound
and runs in a thread pool so the event loop stays responsive.
"""

import asyncio
import gzip
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog
import zstandard as zstd

from dbsnap.config import CompressionCodec
from dbsnap.exceptions import CompressionFailed

logger = structlog.get_logger()

# Thread pool for CPU-bound compression
_executor = ThreadPoolExecutor(max_workers=2)

MAX_ZSTD_LEVEL = zstd.MAX_COMPRESSION_LEVEL
MAX_GZIP_LEVEL = 9

STREAM_CHUNK_SIZE = 1024 * 1024

CODEC_EXTENSIONS = {
    CompressionCodec.ZSTD: ".zst",
    CompressionCodec.GZIP: ".gz",
}


def codec_extension(codec: CompressionCodec | str) -> str:
    """File extension appended to a dump compressed with codec."""
    return CODEC_EXTENSIONS[CompressionCodec(codec)]


def default_level(codec: CompressionCodec | str) -> int:
    """Maximum compression level for codec."""
    if CompressionCodec(codec) == CompressionCodec.GZIP:
        return MAX_GZIP_LEVEL
    return MAX_ZSTD_LEVEL


async def compress_file(
    source: Path,
    destination: Path,
    codec: CompressionCodec | str = CompressionCodec.GZIP,
    level: int | None = None,
) -> int:
    """
    Stream-compress source into destination.

    On failure the destination may be left partially written; the caller
    owns the directory and is expected to discard it.

    Args:
        source: Uncompressed input file
        destination: Output file (created or truncated)
        codec: zstd or gzip
        level: Compression level (default: maximum for the codec)

    Returns:
        Size of the compressed file in bytes
    """
    codec = CompressionCodec(codec)
    level = level if level is not None else default_level(codec)

    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(
            _executor, _compress_sync, source, destination, codec, level
        )
        compressed_size = destination.stat().st_size
    except (OSError, zstd.ZstdError) as e:
        raise CompressionFailed(
            f"Compression failed for {source.name}: {e}",
            details={"source": str(source), "codec": codec.value},
        ) from e

    original_size = source.stat().st_size
    compression_ratio = original_size / compressed_size if compressed_size else 0
    logger.info(
        "compression_complete",
        source=source.name,
        codec=codec.value,
        level=level,
        original_size=original_size,
        compressed_size=compressed_size,
        compression_ratio=f"{compression_ratio:.2f}x",
    )

    return compressed_size


async def decompress_file(
    source: Path,
    destination: Path,
    codec: CompressionCodec | str = CompressionCodec.GZIP,
) -> int:
    """
    Stream-decompress source into destination.

    Returns:
        Size of the decompressed file in bytes
    """
    codec = CompressionCodec(codec)

    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(
            _executor, _decompress_sync, source, destination, codec
        )
    except (OSError, EOFError, zstd.ZstdError) as e:
        raise CompressionFailed(
            f"Decompression failed for {source.name}: {e}",
            details={"source": str(source), "codec": codec.value},
        ) from e

    return destination.stat().st_size


def _compress_sync(
    source: Path,
    destination: Path,
    codec: CompressionCodec,
    level: int,
) -> None:
    """Synchronous streaming compression."""
    with open(source, "rb") as ifh, open(destination, "wb") as ofh:
        if codec == CompressionCodec.GZIP:
            # filename="" and mtime=0 keep the gzip header byte-stable
            with gzip.GzipFile(
                filename="", mode="wb", compresslevel=level, fileobj=ofh, mtime=0
            ) as gz:
                shutil.copyfileobj(ifh, gz, STREAM_CHUNK_SIZE)
        else:
            # A size hint lets zstd size its window to the input
            cctx = zstd.ZstdCompressor(level=level)
            cctx.copy_stream(
                ifh, ofh, size=source.stat().st_size, read_size=STREAM_CHUNK_SIZE
            )


def _decompress_sync(
    source: Path,
    destination: Path,
    codec: CompressionCodec,
) -> None:
    """Synchronous streaming decompression."""
    with open(source, "rb") as ifh, open(destination, "wb") as ofh:
        if codec == CompressionCodec.GZIP:
            with gzip.GzipFile(fileobj=ifh, mode="rb") as gz:
                shutil.copyfileobj(gz, ofh, STREAM_CHUNK_SIZE)
        else:
            dctx = zstd.ZstdDecompressor()
            dctx.copy_stream(ifh, ofh, read_size=STREAM_CHUNK_SIZE)
