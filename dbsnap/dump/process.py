# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Run an external dump tool as a subprocess.
"""

import asyncio
import os
from pathlib import Path
from typing import Dict, Sequence

import structlog

from dbsnap.exceptions import DumpFailed

logger = structlog.get_logger()

# Characters of stderr kept in DumpFailed details
STDERR_TAIL = 2000


async def run_dump_command(
    argv: Sequence[str],
    destination: Path,
    extra_env: Dict[str, str] | None = None,
) -> None:
    """
    Run a dump tool that writes its output to destination.

    Secrets go through extra_env rather than argv so they never appear
    in the process list.

    Raises:
        DumpFailed: If the tool is missing, exits non-zero, or leaves
            no output behind
    """
    tool = argv[0]
    env = {**os.environ, **(extra_env or {})}

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except FileNotFoundError as e:
        raise DumpFailed(
            f"Dump tool not found: {tool}",
            details={"tool": tool},
        ) from e
    except OSError as e:
        raise DumpFailed(
            f"Failed to start {tool}: {e}",
            details={"tool": tool},
        ) from e

    _, stderr = await process.communicate()
    stderr_text = stderr.decode("utf-8", errors="replace").strip() if stderr else ""

    if process.returncode != 0:
        raise DumpFailed(
            f"{tool} exited with status {process.returncode}",
            details={
                "tool": tool,
                "returncode": process.returncode,
                "stderr": stderr_text[-STDERR_TAIL:],
            },
        )

    if not destination.exists() or destination.stat().st_size == 0:
        raise DumpFailed(
            f"{tool} produced no output",
            details={"tool": tool, "destination": str(destination)},
        )

    if stderr_text:
        logger.warning("dump_tool_stderr", tool=tool, stderr=stderr_text[-STDERR_TAIL:])
