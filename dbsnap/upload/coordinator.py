# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Upload Coordinator - Upload a backup set all-or-nothing.

Files are uploaded one at a time, parts in order and the manifest last.
Each file gets a fixed number of attempts with a fixed delay between
them. If a file exhausts its attempts, every file already uploaded in
this run is deleted again (rollback) and the failure is re-raised.

State machine per run:

    IDLE -> UPLOADING(i) -> UPLOADING_MANIFEST -> DONE
               \\                  \\
                +------------------+--> ROLLING_BACK -> FAILED

DONE and FAILED are terminal.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Sequence

import structlog

from dbsnap.exceptions import RollbackPartialFailure, UploadExhausted, UploadTransient
from dbsnap.upload.store import RemoteStore, remote_key

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0


class UploadState(str, Enum):
    """Upload coordinator state."""

    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOADING_MANIFEST = "uploading_manifest"
    ROLLING_BACK = "rolling_back"
    DONE = "done"
    FAILED = "failed"


class UploadItem(NamedTuple):
    """A local file and the name it gets in the remote folder."""

    local_path: Path
    remote_name: str


@dataclass
class UploadReport:
    """Result of a successful backup upload."""

    remote_folder: str
    part_urls: List[str]
    manifest_url: str
    attempts: int
    uploaded: List[str] = field(default_factory=list)


class UploadCoordinator:
    """
    Uploads one backup set with retry and rollback.

    A coordinator handles a single run; create a new one per backup.
    """

    def __init__(
        self,
        store: RemoteStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {retry_delay}")

        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        self.state = UploadState.IDLE
        # 1-based index of the part being uploaded while UPLOADING
        self.current_part: int | None = None
        # Remote names uploaded so far, in upload order. Append-only.
        self.uploaded: List[str] = []
        self.rollback_failures: List[RollbackPartialFailure] = []
        self._attempts = 0

    async def upload_backup(
        self,
        parts: Sequence[UploadItem],
        manifest: UploadItem,
        remote_folder: str,
    ) -> UploadReport:
        """
        Upload every part, then the manifest.

        Args:
            parts: Part files in sequence order
            manifest: The manifest file, uploaded only after all parts
            remote_folder: Folder (key prefix) exclusive to this run

        Returns:
            UploadReport with the URLs of everything uploaded

        Raises:
            UploadExhausted: A file failed every attempt; uploaded files
                have been rolled back before this is raised
        """
        if self.state != UploadState.IDLE:
            raise RuntimeError(f"UploadCoordinator already used (state={self.state.value})")

        part_urls: List[str] = []

        try:
            for index, item in enumerate(parts, start=1):
                self.state = UploadState.UPLOADING
                self.current_part = index
                url = await self._upload_with_retry(item, remote_folder)
                part_urls.append(url)

            self.state = UploadState.UPLOADING_MANIFEST
            self.current_part = None
            manifest_url = await self._upload_with_retry(manifest, remote_folder)

        except UploadExhausted as e:
            logger.error(
                "upload_exhausted",
                remote_folder=remote_folder,
                filename=e.filename,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            await self._rollback(remote_folder, e.filename)
            self.state = UploadState.FAILED
            raise

        self.state = UploadState.DONE

        logger.info(
            "backup_uploaded",
            remote_folder=remote_folder,
            parts=len(part_urls),
            attempts=self._attempts,
        )

        return UploadReport(
            remote_folder=remote_folder,
            part_urls=part_urls,
            manifest_url=manifest_url,
            attempts=self._attempts,
            uploaded=list(self.uploaded),
        )

    async def _upload_with_retry(self, item: UploadItem, remote_folder: str) -> str:
        """Upload one file, retrying with a fixed delay up to max_attempts."""
        last_error: BaseException | None = None

        for attempt in range(1, self.max_attempts + 1):
            self._attempts += 1
            try:
                url = await self._attempt_upload(item, remote_folder, attempt)
            except UploadTransient as e:
                last_error = e.error
                logger.warning(
                    "upload_attempt_failed",
                    filename=item.remote_name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e.error),
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)
                continue

            self.uploaded.append(item.remote_name)
            logger.info(
                "file_uploaded",
                filename=item.remote_name,
                attempt=attempt,
                url=url,
            )
            return url

        raise UploadExhausted(item.remote_name, self.max_attempts, last_error)

    async def _attempt_upload(self, item: UploadItem, remote_folder: str, attempt: int) -> str:
        """Single upload attempt. Store errors are not inspected; all are retryable."""
        try:
            return await self.store.upload(item.local_path, item.remote_name, remote_folder)
        except Exception as e:
            raise UploadTransient(item.remote_name, attempt, e) from e

    async def _rollback(self, remote_folder: str, failed_name: str) -> None:
        """
        Best-effort delete of everything uploaded in this run.

        The file that exhausted its attempts is deleted too: a failed attempt
        may still have written the object. Deleting a missing key succeeds.
        """
        self.state = UploadState.ROLLING_BACK

        logger.warning(
            "rollback_started",
            remote_folder=remote_folder,
            files=len(self.uploaded),
            failed_file=failed_name,
        )

        deleted = 0
        for name in [*self.uploaded, failed_name]:
            key = remote_key(remote_folder, name)
            try:
                await self.store.delete(key)
                deleted += 1
            except Exception as e:
                failure = RollbackPartialFailure(key, e)
                self.rollback_failures.append(failure)
                logger.error("rollback_delete_failed", remote_key=key, error=str(e))

        logger.warning(
            "rollback_complete",
            remote_folder=remote_folder,
            deleted=deleted,
            failed=len(self.rollback_failures),
        )
