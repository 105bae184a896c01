# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration.

A thin wrapper around create_config() for cron-style invocations, where
all settings come from the process environment.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping

from dbsnap.builder import create_config
from dbsnap.config import BackupConfig, ChecksumAlgorithm, CompressionCodec
from dbsnap.errors import (
    explain_invalid_checksum_env,
    explain_invalid_compression_env,
    explain_invalid_int_env,
    explain_missing_bucket_env,
    explain_missing_database_env,
)
from dbsnap.exceptions import ConfigurationError


def _parse_positive_int(name: str, value: str | None) -> int | None:
    if not value:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_int_env(name, value)) from exc
    if number < 1:
        raise ConfigurationError(explain_invalid_int_env(name, value))
    return number


def _parse_compression(value: str | None) -> CompressionCodec:
    if not value:
        return CompressionCodec.GZIP
    try:
        return CompressionCodec(value.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_compression_env(value)) from exc


def _parse_checksum(value: str | None) -> ChecksumAlgorithm:
    if not value:
        return ChecksumAlgorithm.MD5
    try:
        return ChecksumAlgorithm(value.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_checksum_env(value)) from exc


def create_config_from_env(environ: Mapping[str, str] | None = None) -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Required:
        - S3_BUCKET: Bucket receiving the backups
        - DATABASE_URL, or MYSQL_HOST + MYSQL_USERNAME + MYSQL_DATABASE

    Optional environment variables:
        - MYSQL_PORT, MYSQL_PASSWORD: used with the MYSQL_* settings
        - AWS_REGION: AWS region (default: us-east-1)
        - S3_ENDPOINT_URL: S3-compatible endpoint (MinIO, R2, ...)
        - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: explicit credentials
        - DBSNAP_PART_SIZE: Part size in bytes (default: 9437184)
        - DBSNAP_COMPRESSION: 'zstd' | 'gzip' (default: gzip)
        - DBSNAP_CHECKSUM: 'md5' | 'sha256' (default: md5)
        - DBSNAP_WORKSPACE: Parent directory of run workspaces
        - DBSNAP_REMOTE_ROOT: Remote key prefix (default: databaseBackups)
    """
    env = os.environ if environ is None else environ

    bucket = env.get("S3_BUCKET")
    if not bucket:
        raise ConfigurationError(explain_missing_bucket_env())

    options: Dict[str, Any] = {
        "region": env.get("AWS_REGION", "us-east-1"),
        "compression": _parse_compression(env.get("DBSNAP_COMPRESSION")),
        "checksum_algorithm": _parse_checksum(env.get("DBSNAP_CHECKSUM")),
    }

    database_url = env.get("DATABASE_URL")
    if database_url:
        options["database_url"] = database_url
    else:
        host = env.get("MYSQL_HOST")
        user = env.get("MYSQL_USERNAME")
        name = env.get("MYSQL_DATABASE")
        if not (host and user and name):
            raise ConfigurationError(explain_missing_database_env())
        options.update(
            db_host=host,
            db_user=user,
            db_name=name,
            db_password=env.get("MYSQL_PASSWORD", ""),
            db_port=_parse_positive_int("MYSQL_PORT", env.get("MYSQL_PORT")),
        )

    part_size = _parse_positive_int("DBSNAP_PART_SIZE", env.get("DBSNAP_PART_SIZE"))
    if part_size is not None:
        options["part_size"] = part_size

    if env.get("S3_ENDPOINT_URL"):
        options["endpoint_url"] = env["S3_ENDPOINT_URL"]

    if env.get("AWS_ACCESS_KEY_ID"):
        options["aws_access_key_id"] = env["AWS_ACCESS_KEY_ID"]
        options["aws_secret_access_key"] = env.get("AWS_SECRET_ACCESS_KEY")

    if env.get("DBSNAP_WORKSPACE"):
        options["workspace_root"] = env["DBSNAP_WORKSPACE"]

    if env.get("DBSNAP_REMOTE_ROOT"):
        options["remote_root"] = env["DBSNAP_REMOTE_ROOT"]

    return create_config(bucket, **options)
