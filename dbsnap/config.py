# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation. Remote store
credentials live here and are handed to the store client at construction,
never kept as process-wide state.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List
import re
import tempfile


# Size limit of a single remote object (10 MB raw upload limit) and the
# part size chosen to stay safely below it.
DEFAULT_MAX_OBJECT_SIZE = 10 * 1000 * 1000
DEFAULT_PART_SIZE = 9 * 1024 * 1024

DEFAULT_REMOTE_ROOT = "databaseBackups"


class DumpBackend(str, Enum):
    """Database engine whose dump tool produces the backup."""

    MYSQL = "mysql"
    POSTGRES = "postgres"


class CompressionCodec(str, Enum):
    """Compression codec applied to the dump."""

    ZSTD = "zstd"  # Smaller artifacts, needs zstd to restore
    GZIP = "gzip"  # Readable with plain gunzip


class ChecksumAlgorithm(str, Enum):
    """Digest recorded per part in the manifest."""

    MD5 = "md5"  # Corruption detection, md5sum compatible
    SHA256 = "sha256"  # Tamper resistance


DEFAULT_PORTS = {
    DumpBackend.MYSQL: 3306,
    DumpBackend.POSTGRES: 5432,
}

COMPRESSION_LEVEL_RANGES = {
    CompressionCodec.ZSTD: (1, 22),
    CompressionCodec.GZIP: (1, 9),
}


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def _validate_remote_root(remote_root: str) -> bool:
    """Remote root is a relative key prefix without surrounding slashes."""
    if not remote_root:
        return False
    if remote_root.startswith("/") or remote_root.endswith("/"):
        return False
    return ".." not in remote_root.split("/")


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters handed to a dump producer."""

    backend: DumpBackend
    host: str
    port: int
    user: str
    database: str
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for one backup pipeline.

    Frozen after creation so a run can never observe a setting change
    halfway through.
    """

    # Database to dump
    db_name: str
    db_host: str = "localhost"
    db_user: str = "root"
    db_password: str = field(default="", repr=False)
    db_port: int | None = None
    db_backend: DumpBackend = DumpBackend.MYSQL

    # Remote store
    bucket: str = ""
    region: str = "us-east-1"
    endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = field(default=None, repr=False)
    max_object_size: int = DEFAULT_MAX_OBJECT_SIZE

    # Remote key prefix; folders are {remote_root}/{year}/Month-{month}/backup-{ts}
    remote_root: str = DEFAULT_REMOTE_ROOT

    # Parent directory of the per-run workspace
    workspace_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    # Artifacts larger than this are split into parts of exactly this size
    part_size: int = DEFAULT_PART_SIZE

    compression: CompressionCodec = CompressionCodec.GZIP

    # None means maximum effort for the chosen codec
    compression_level: int | None = None

    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.MD5

    # Per-file upload attempt policy (fixed delay, no backoff)
    upload_max_attempts: int = 3
    upload_retry_delay: float = 2.0

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not self.db_name:
            errors.append("db_name is required")

        if not self.db_host:
            errors.append("db_host is required")

        if self.db_port is not None and not 0 < self.db_port < 65536:
            errors.append(f"db_port must be between 1 and 65535, got {self.db_port}")

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if not _validate_remote_root(self.remote_root):
            errors.append(f"Invalid remote_root: {self.remote_root!r}")

        if self.part_size < 1:
            errors.append(f"part_size must be >= 1, got {self.part_size}")
        elif self.part_size > self.max_object_size:
            errors.append(
                f"part_size ({self.part_size}) exceeds max_object_size ({self.max_object_size})"
            )

        if self.compression_level is not None:
            codec = CompressionCodec(self.compression)
            low, high = COMPRESSION_LEVEL_RANGES[codec]
            if not low <= self.compression_level <= high:
                errors.append(
                    f"compression_level for {codec.value} must be "
                    f"between {low} and {high}, got {self.compression_level}"
                )

        if self.upload_max_attempts < 1:
            errors.append(
                f"upload_max_attempts must be >= 1, got {self.upload_max_attempts}"
            )

        if self.upload_retry_delay < 0:
            errors.append(
                f"upload_retry_delay must be >= 0, got {self.upload_retry_delay}"
            )

        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            errors.append(
                "aws_access_key_id and aws_secret_access_key must be set together"
            )

        # Raise all errors at once
        if errors:
            from dbsnap.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def database_settings(self) -> DatabaseSettings:
        """Connection parameters for the dump producer."""
        return DatabaseSettings(
            backend=self.db_backend,
            host=self.db_host,
            port=self.db_port or DEFAULT_PORTS[self.db_backend],
            user=self.db_user,
            database=self.db_name,
            password=self.db_password,
        )

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)
