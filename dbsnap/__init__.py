# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbsnap - Chunked, integrity-verified database backups to S3.

Dumps a database, compresses it, splits it into parts below the object
store's size limit, checksums every part into a manifest and uploads the
set all-or-nothing: any permanent upload failure rolls back the parts
already uploaded, and the manifest is always uploaded last.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from dbsnap.builder import create_config
from dbsnap.env import create_config_from_env

# Core functions
from dbsnap.core import BackupResult, run_backup
from dbsnap.restore import RestoreResult, restore_backup, verify_backup_folder

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    # Backup
    "run_backup",
    "BackupResult",
    # Restore
    "restore_backup",
    "verify_backup_folder",
    "RestoreResult",
]
