# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap Exceptions - Custom exceptions for the dbsnap package.

Each pipeline stage raises its own error kind so callers (and the
scheduler invoking the CLI) can tell which step of a run failed.
"""


class DbsnapError(Exception):
    """Base exception for all dbsnap errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DbsnapError):
    """Raised when configuration is invalid."""

    pass


class DumpFailed(DbsnapError):
    """Raised when the external database dump step fails."""

    pass


class CompressionFailed(DbsnapError):
    """Raised when streaming compression fails."""

    pass


class SegmentationFailed(DbsnapError):
    """Raised when a part file cannot be written."""

    pass


class ChecksumFailed(DbsnapError):
    """Raised when a part cannot be read for hashing."""

    pass


class ManifestError(DbsnapError):
    """Raised when a manifest cannot be written or parsed."""

    pass


class S3OperationError(DbsnapError):
    """Raised when S3 operations fail."""

    pass


class UploadTransient(DbsnapError):
    """A single upload attempt failed. Retried up to the attempt cap."""

    def __init__(self, filename: str, attempt: int, error: BaseException):
        self.filename = filename
        self.attempt = attempt
        self.error = error
        super().__init__(
            f"Upload attempt {attempt} failed for {filename}: {error}",
            details={"filename": filename, "attempt": attempt},
        )


class UploadExhausted(DbsnapError):
    """All upload attempts for one file failed."""

    def __init__(self, filename: str, attempts: int, last_error: BaseException | None):
        self.filename = filename
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Upload of {filename} failed after {attempts} attempts: {last_error}",
            details={"filename": filename, "attempts": attempts},
        )


class RollbackPartialFailure(DbsnapError):
    """A delete issued during rollback failed. Logged, never raised to callers."""

    def __init__(self, remote_key: str, error: BaseException):
        self.remote_key = remote_key
        self.error = error
        super().__init__(
            f"Rollback could not delete {remote_key}: {error}",
            details={"remote_key": remote_key},
        )


class RestoreError(DbsnapError):
    """Raised when restore operations fail."""

    pass
