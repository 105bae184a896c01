# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command line entry point.

    dbsnap backup                 # one run, configured from the environment
    dbsnap restore FOLDER [-o DIR]

Exit status is 0 on success and 1 on any failure, so cron or another
scheduler can decide whether to alert or retry.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

import structlog

from dbsnap.core import run_backup
from dbsnap.env import create_config_from_env
from dbsnap.exceptions import DbsnapError
from dbsnap.restore import restore_backup

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbsnap",
        description="Chunked, checksummed database backups to S3.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("backup", help="Dump, compress, split and upload one backup.")

    restore = subcommands.add_parser(
        "restore", help="Verify and reassemble a downloaded backup folder."
    )
    restore.add_argument("folder", type=Path, help="Folder with manifest.json and parts")
    restore.add_argument(
        "-o", "--output", type=Path, default=None, help="Output directory (default: FOLDER)"
    )

    return parser


async def _backup() -> int:
    config = create_config_from_env()
    result = await run_backup(config)
    print(f"backup uploaded: {result.manifest_url}")
    return 0


async def _restore(folder: Path, output: Path | None) -> int:
    result = await restore_backup(folder, output)
    print(f"dump restored: {result.dump_path}")
    return 0


async def _main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        if args.command == "backup":
            return await _backup()
        return await _restore(args.folder, args.output)
    except (DbsnapError, OSError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


def main(argv: Sequence[str] | None = None) -> int:
    return asyncio.run(_main(argv))


if __name__ == "__main__":
    raise SystemExit(main())
