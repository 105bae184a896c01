# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dump Producers - Produce a complete database dump file with the vendor tool.
"""

from pathlib import Path
from typing import Protocol

from dbsnap.config import DatabaseSettings, DumpBackend
from dbsnap.exceptions import ConfigurationError


class DumpProducer(Protocol):
    """Protocol for dump producers."""

    async def __call__(self, settings: DatabaseSettings, destination: Path) -> None:
        """
        Write a complete dump of the database to destination.

        Args:
            settings: Connection parameters
            destination: File to write; complete on success

        Raises:
            DumpFailed: If the dump could not be produced. The
                destination may then be partial or missing.
        """
        ...


def get_dump_producer(backend: DumpBackend | str) -> DumpProducer:
    """
    Return the dump producer for a database backend.

    Raises:
        ConfigurationError: If backend is unsupported
    """
    if backend == DumpBackend.MYSQL:
        from dbsnap.dump.mysql import dump_mysql

        return dump_mysql
    elif backend == DumpBackend.POSTGRES:
        from dbsnap.dump.postgres import dump_postgres

        return dump_postgres
    else:
        raise ConfigurationError(f"Unsupported dump backend: {backend}")


__all__ = [
    "DumpProducer",
    "get_dump_producer",
]
