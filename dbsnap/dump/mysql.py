# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
MySQL dump producer using mysqldump.

--single-transaction gives a consistent snapshot of InnoDB tables
without locking them for the duration of the dump.
"""

from pathlib import Path
from typing import List

import structlog

from dbsnap.config import DatabaseSettings
from dbsnap.dump.process import run_dump_command

logger = structlog.get_logger()

MYSQLDUMP = "mysqldump"


def build_mysqldump_command(settings: DatabaseSettings, destination: Path) -> List[str]:
    """Command line for dumping settings.database into destination."""
    return [
        MYSQLDUMP,
        f"--host={settings.host}",
        f"--port={settings.port}",
        f"--user={settings.user}",
        "--single-transaction",
        "--routines",
        "--triggers",
        "--events",
        f"--result-file={destination}",
        settings.database,
    ]


async def dump_mysql(settings: DatabaseSettings, destination: Path) -> None:
    """
    Dump a MySQL database to destination.

    Raises:
        DumpFailed: If mysqldump fails
    """
    logger.info(
        "dump_started",
        backend="mysql",
        host=settings.host,
        database=settings.database,
    )

    # MYSQL_PWD keeps the password off the command line
    await run_dump_command(
        build_mysqldump_command(settings, destination),
        destination,
        extra_env={"MYSQL_PWD": settings.password} if settings.password else None,
    )

    logger.info(
        "dump_complete",
        backend="mysql",
        database=settings.database,
        size=destination.stat().st_size,
    )
