# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
PostgreSQL dump producer using pg_dump (plain SQL format).
"""

from pathlib import Path
from typing import List

import structlog

from dbsnap.config import DatabaseSettings
from dbsnap.dump.process import run_dump_command

logger = structlog.get_logger()

PG_DUMP = "pg_dump"


def build_pg_dump_command(settings: DatabaseSettings, destination: Path) -> List[str]:
    """Command line for dumping settings.database into destination."""
    return [
        PG_DUMP,
        f"--host={settings.host}",
        f"--port={settings.port}",
        f"--username={settings.user}",
        "--no-password",
        "--format=plain",
        f"--file={destination}",
        settings.database,
    ]


async def dump_postgres(settings: DatabaseSettings, destination: Path) -> None:
    """
    Dump a PostgreSQL database to destination.

    Raises:
        DumpFailed: If pg_dump fails
    """
    logger.info(
        "dump_started",
        backend="postgres",
        host=settings.host,
        database=settings.database,
    )

    await run_dump_command(
        build_pg_dump_command(settings, destination),
        destination,
        extra_env={"PGPASSWORD": settings.password} if settings.password else None,
    )

    logger.info(
        "dump_complete",
        backend="postgres",
        database=settings.database,
        size=destination.stat().st_size,
    )
