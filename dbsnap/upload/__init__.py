# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Upload - Remote store client and all-or-nothing upload coordination.
"""

from dbsnap.upload.store import (
    RemoteStore,
    S3ObjectStore,
    remote_key,
)

from dbsnap.upload.coordinator import (
    UploadCoordinator,
    UploadItem,
    UploadReport,
    UploadState,
)

__all__ = [
    # Store
    "RemoteStore",
    "S3ObjectStore",
    "remote_key",
    # Coordinator
    "UploadCoordinator",
    "UploadItem",
    "UploadReport",
    "UploadState",
]
