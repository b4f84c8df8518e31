"""
build_webhooks.artifacts — Map of a build's artifacts to their download URLs.

Merges two independent sources into {name: {source: url}}:
  archive — files archived by the build server in the build's artifacts
            directory, served from {root}/repository/download/...
  s3      — objects uploaded to the configured bucket under
            "{full name with ' :: ' → '::'}/{build number}/"

An artifact present in both sources carries both URLs; one present only in
S3 carries only "s3". S3 is best-effort: a missing bucket or any S3 failure
leaves the archive-only map unchanged.

Example:
    {"echo-service.jar": {
        "archive": "http://ci:8080/repository/download/Echo_Build/37/echo-service.jar",
        "s3": "https://s3-eu-west-1.amazonaws.com/bakery/Echo%3A%3ABuild/37/echo-service.jar"}}
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from build_webhooks.config import StorageConfig
from build_webhooks.guard import ArtifactsGuard, LocalArtifactsGuard, read_locked
from build_webhooks.models import (
    ARCHIVE_SOURCE,
    ARTIFACTS_METADATA_DIR,
    S3_METADATA_SUFFIX,
    S3_SOURCE,
    BuildEvent,
)

logger = Logger(service="build-webhooks")

ArtifactMap = dict[str, dict[str, str]]

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


def s3_prefix(full_name: str, build_number: str) -> str:
    """Key prefix of a build's uploads, e.g. "Echo::Build/15/"."""
    return f"{full_name.replace(' :: ', '::')}/{build_number}/"


def s3_object_url(region: str, bucket: str, key: str) -> str:
    return f"https://s3-{region}.amazonaws.com/{bucket}/{quote(key, safe='/')}"


def archive_url(root_url: str, build_type_id: str, build_number: str, name: str) -> str:
    return f"{root_url.rstrip('/')}/repository/download/{build_type_id}/{build_number}/{name}"


def make_s3_client(storage: StorageConfig) -> Any:
    """boto3 S3 client using configured keys, or the default credential chain."""
    kwargs: dict[str, Any] = {}
    region = os.environ.get("AWS_REGION")
    if region:
        kwargs["region_name"] = region
    if storage.has_credentials:
        kwargs["aws_access_key_id"] = storage.access_key
        kwargs["aws_secret_access_key"] = storage.secret_key
    return boto3.client("s3", **kwargs)


class ArtifactResolver:
    """Resolves artifact URLs for builds of one server.

    storage=None disables the S3 lookup. s3_client is created lazily from
    storage unless supplied.
    """

    def __init__(
        self,
        root_url: str,
        *,
        storage: StorageConfig | None = None,
        guard: ArtifactsGuard | None = None,
        s3_client: Any = None,
    ) -> None:
        self._root_url = root_url
        self._storage = storage
        self._guard: ArtifactsGuard = guard or LocalArtifactsGuard()
        self._s3: Any = s3_client

    def _s3_client(self, storage: StorageConfig) -> Any:
        if self._s3 is None:
            self._s3 = make_s3_client(storage)
        return self._s3

    def resolve(self, event: BuildEvent) -> ArtifactMap:
        if event.build_number is None:
            return {}
        artifacts = self.archived_artifacts(event)
        return self.add_s3_artifacts(artifacts, event)

    # -----------------------------------------------------------------------
    # Archive
    # -----------------------------------------------------------------------

    def list_artifacts_dir(self, directory: Path | None) -> list[str]:
        """Names of the immediate entries of directory, read under the guard."""
        if directory is None or not directory.is_dir():
            return []
        with read_locked(self._guard, directory):
            return sorted(entry.name for entry in directory.iterdir())

    def archived_artifacts(self, event: BuildEvent) -> ArtifactMap:
        if not self._root_url.strip():
            return {}
        names = self.list_artifacts_dir(event.artifacts_dir)
        if not names:
            return {}

        artifacts: ArtifactMap = {}
        for name in names:
            if name == ARTIFACTS_METADATA_DIR or not name.strip():
                continue
            url = archive_url(self._root_url, event.build_type_id, str(event.build_number), name)
            artifacts[name] = {ARCHIVE_SOURCE: url}
        return artifacts

    # -----------------------------------------------------------------------
    # S3
    # -----------------------------------------------------------------------

    def _bucket_exists(self, s3: Any, bucket: str) -> bool:
        try:
            s3.head_bucket(Bucket=bucket)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_BUCKET_CODES:
                return False
            raise
        return True

    def _list_keys(self, s3: Any, bucket: str, prefix: str) -> list[str]:
        keys: list[str] = []
        paginator = s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            keys.extend(obj.get("Key", "") for obj in page.get("Contents", []))
        return keys

    def add_s3_artifacts(self, artifacts: ArtifactMap, event: BuildEvent) -> ArtifactMap:
        """Merge S3 URLs into artifacts. Never raises; S3 errors are logged."""
        storage = self._storage
        if storage is None or event.build_number is None:
            return artifacts

        merged: ArtifactMap = {name: dict(urls) for name, urls in artifacts.items()}
        try:
            s3 = self._s3_client(storage)
            if not self._bucket_exists(s3, storage.bucket):
                logger.info(
                    "S3 artifact bucket does not exist", extra={"bucket": storage.bucket}
                )
                return artifacts

            prefix = s3_prefix(event.full_name, event.build_number)
            keys = self._list_keys(s3, storage.bucket, prefix)
            if not keys:
                return artifacts

            location = s3.get_bucket_location(Bucket=storage.bucket)
            region = location.get("LocationConstraint") or "us-east-1"

            for key in keys:
                if not key.strip() or key.endswith(S3_METADATA_SUFFIX):
                    continue
                name = key.split("/")[-1]
                if not name.strip():
                    continue
                merged.setdefault(name, {})[S3_SOURCE] = s3_object_url(region, storage.bucket, key)
        except Exception:
            logger.exception(
                "Failed to list objects in S3 bucket",
                extra={"bucket": storage.bucket, "build": event.identity},
            )
            return artifacts

        return merged
