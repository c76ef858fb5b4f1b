# =============================================================================
# lib/object_store.py - S3-Compatible Object Store
# =============================================================================
# Durable blob storage scoped by bucket, with URL-based addressing.
#
# Buckets form a closed set (BucketType). Each variant carries its own policy
# (physical name, size ceiling, allowed content types), so adding a bucket is
# a change to ObjectStoreConfig.buckets, not to this module.
#
# Addressing:
#   key        = {random id}{original extension}
#   public URL = {protocol}://{endpoint}{:port unless default}/{bucket}/{key}
#
# The store never deletes blobs on its own initiative; the caller owns the
# blob lifecycle. delete() is idempotent.
#
# Usage:
#   store = ObjectStore(settings.object_store_config())
#   store.initialize()
#   key = store.upload(BucketType.LOCATIONS, data, "image/png", len(data), "a.png")
#   url = store.build_url(BucketType.LOCATIONS, key)
# =============================================================================

from __future__ import annotations

import base64
import json
import logging
import os
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, Field

from app.exceptions import (
    EmptyFileError,
    FileTooLargeError,
    InvalidPathError,
    StorageUnavailableError,
    UnsupportedFileTypeError,
    UploadFailedError,
)

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024

IMAGE_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
})

_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


class BucketType(str, Enum):
    """Logical content categories, one bucket each."""
    LOCATIONS = "locations"


@dataclass(frozen=True)
class BucketPolicy:
    """Per-bucket upload policy."""
    name: str
    max_size_bytes: int = 12 * MEGABYTE
    allowed_content_types: frozenset[str] = IMAGE_CONTENT_TYPES
    public_read: bool = True


def default_bucket_policies() -> dict[BucketType, BucketPolicy]:
    return {bucket: BucketPolicy(name=bucket.value) for bucket in BucketType}


class ObjectStoreConfig(BaseModel):
    """Every option understood by ObjectStore, with its default."""

    endpoint: str = "localhost"
    port: int | None = Field(default=9000, ge=1, le=65535)
    use_ssl: bool = False
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    region: str = "us-east-1"
    timeout_seconds: float = Field(default=30.0, gt=0)
    buckets: dict[BucketType, BucketPolicy] = Field(default_factory=default_bucket_policies)

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def protocol(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def port_suffix(self) -> str:
        default_port = 443 if self.use_ssl else 80
        if self.port is None or self.port == default_port:
            return ""
        return f":{self.port}"

    @property
    def endpoint_url(self) -> str:
        """Base URL of the store; also the prefix of every public URL."""
        return f"{self.protocol}://{self.endpoint}{self.port_suffix}"


@dataclass(frozen=True)
class BlobReference:
    """One object in the store."""
    bucket: str
    key: str

    @property
    def path(self) -> str:
        return f"{self.bucket}/{self.key}"


@dataclass
class UploadPayload:
    """A binary upload as received from the caller."""
    content: bytes | BinaryIO
    content_type: str
    size_bytes: int
    filename: str = ""


def public_read_policy(bucket_name: str) -> dict[str, Any]:
    """IAM-style statement granting anonymous GetObject on every key."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket_name}/*"],
            }
        ],
    }


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class ObjectStore:
    """
    Bucket-scoped blob storage on an S3-compatible endpoint (MinIO, S3).

    Writes and deletes go through a privileged (access key) client; reads are
    served anonymously through the public-read bucket policy.
    """

    def __init__(self, config: ObjectStoreConfig, client: Any | None = None):
        self.config = config
        self._client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
                connect_timeout=config.timeout_seconds,
                read_timeout=config.timeout_seconds,
                retries={"max_attempts": 1},
            ),
        )
        self._policies_by_name = {policy.name: policy for policy in config.buckets.values()}
        self.provisioned_buckets: set[str] = set()

    # -------------------------------------------------------------------------
    # Bucket Provisioning
    # -------------------------------------------------------------------------

    def initialize(self) -> set[str]:
        """
        Create every known bucket if absent and attach its read policy.

        Safe to call on every process start. A bucket that fails to initialize
        is logged and skipped; uploads to it will fail until it is fixed.

        Returns:
            Names of the buckets that are provisioned
        """
        for policy in self.config.buckets.values():
            try:
                self._initialize_bucket(policy)
                self.provisioned_buckets.add(policy.name)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Failed to initialize bucket {policy.name}: {e}")
                logger.warning(
                    f"Continuing without bucket {policy.name}; uploads to it will fail"
                )
        return set(self.provisioned_buckets)

    def _initialize_bucket(self, policy: BucketPolicy) -> None:
        if self._bucket_exists(policy.name):
            logger.info(f"Bucket {policy.name} already exists")
        else:
            params: dict[str, Any] = {"Bucket": policy.name}
            # us-east-1 rejects an explicit LocationConstraint
            if self.config.region != "us-east-1":
                params["CreateBucketConfiguration"] = {"LocationConstraint": self.config.region}
            self._client.create_bucket(**params)
            logger.info(f"Created bucket {policy.name}")

        if policy.public_read:
            self._client.put_bucket_policy(
                Bucket=policy.name,
                Policy=json.dumps(public_read_policy(policy.name)),
            )
            logger.info(f"Public read policy set on bucket {policy.name}")

    def _bucket_exists(self, bucket_name: str) -> bool:
        try:
            self._client.head_bucket(Bucket=bucket_name)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise

    # -------------------------------------------------------------------------
    # Policy Lookup
    # -------------------------------------------------------------------------

    def policy_for(self, bucket: BucketType | str) -> BucketPolicy:
        """
        Resolve a logical bucket or a physical bucket name to its policy.

        Raises:
            InvalidPathError: If the bucket is not one of the known buckets
        """
        if isinstance(bucket, BucketType):
            policy = self.config.buckets.get(bucket)
        else:
            policy = self._policies_by_name.get(bucket)
        if policy is None:
            raise InvalidPathError(getattr(bucket, "value", str(bucket)))
        return policy

    # -------------------------------------------------------------------------
    # Blob Operations
    # -------------------------------------------------------------------------

    def upload(
        self,
        bucket: BucketType | str,
        payload: bytes | BinaryIO,
        content_type: str,
        size_bytes: int,
        original_filename: str = "",
    ) -> str:
        """
        Validate and store a blob under a fresh random key.

        All validation happens before any call to the store.

        Returns:
            The new object key (without the bucket)

        Raises:
            InvalidPathError: Unknown bucket
            EmptyFileError: size_bytes is zero
            FileTooLargeError: size_bytes exceeds the bucket ceiling
            UnsupportedFileTypeError: content type not allowed in this bucket
            UploadFailedError: The store failed the write
        """
        policy = self.policy_for(bucket)

        if size_bytes <= 0:
            raise EmptyFileError(original_filename or None)
        if size_bytes > policy.max_size_bytes:
            raise FileTooLargeError(size_bytes, policy.max_size_bytes)
        if content_type not in policy.allowed_content_types:
            raise UnsupportedFileTypeError(content_type, sorted(policy.allowed_content_types))

        extension = os.path.splitext(original_filename or "")[1]
        key = f"{uuid.uuid4().hex}{extension}"
        metadata = {
            # S3 metadata must be ASCII; the name is informational only
            "original-name": base64.b64encode((original_filename or "").encode("utf-8")).decode("ascii"),
        }

        try:
            self._client.put_object(
                Bucket=policy.name,
                Key=key,
                Body=payload,
                ContentLength=size_bytes,
                ContentType=content_type,
                Metadata=metadata,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Storage upload failed for {policy.name}/{key}: {e}")
            raise UploadFailedError(str(e))

        logger.info(f"Uploaded file to storage: {policy.name}/{key} ({size_bytes} bytes)")
        return key

    def exists(self, bucket: BucketType | str, key: str) -> bool:
        """
        Check whether an object exists.

        Raises:
            InvalidPathError: Unknown bucket
            StorageUnavailableError: The store could not answer
        """
        policy = self.policy_for(bucket)
        try:
            self._client.head_object(Bucket=policy.name, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise StorageUnavailableError("existence check", str(e))
        except BotoCoreError as e:
            raise StorageUnavailableError("existence check", str(e))

    def delete(self, bucket: BucketType | str, key: str) -> None:
        """
        Delete an object. Deleting a missing object is not an error.

        Raises:
            InvalidPathError: Unknown bucket
            StorageUnavailableError: The store failed the delete
        """
        policy = self.policy_for(bucket)

        if not self.exists(policy.name, key):
            logger.warning(f"File not found, nothing to delete: {policy.name}/{key}")
            return

        try:
            self._client.delete_object(Bucket=policy.name, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete {policy.name}/{key}: {e}")
            raise StorageUnavailableError("delete", str(e))

        logger.info(f"Deleted file from storage: {policy.name}/{key}")

    def list_keys(
        self,
        bucket: BucketType | str,
        older_than: datetime | None = None,
    ) -> Iterator[tuple[str, datetime]]:
        """
        Iterate (key, last_modified) for every object in a bucket.

        Args:
            bucket: Bucket to list
            older_than: If given, only objects last modified before this
                (timezone-aware) instant are yielded

        Raises:
            InvalidPathError: Unknown bucket
            StorageUnavailableError: The store failed the listing
        """
        policy = self.policy_for(bucket)
        paginator = self._client.get_paginator("list_objects_v2")

        try:
            for page in paginator.paginate(Bucket=policy.name):
                for item in page.get("Contents", []):
                    last_modified = item["LastModified"]
                    if older_than is not None and last_modified >= older_than:
                        continue
                    yield item["Key"], last_modified
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailableError("listing", str(e))

    # -------------------------------------------------------------------------
    # URL Addressing
    # -------------------------------------------------------------------------

    def build_url(self, bucket: BucketType | str, key: str) -> str:
        """Public URL of an object. Pure function of configuration; no I/O."""
        policy = self.policy_for(bucket)
        return f"{self.config.endpoint_url}/{policy.name}/{key}"

    def parse_url(self, url: str | None) -> BlobReference | None:
        """
        Inverse of build_url.

        Returns:
            BlobReference if the URL points into a known bucket of this
            store, None for anything else (e.g. an externally hosted image)
        """
        if not url:
            return None

        prefix = f"{self.config.endpoint_url}/"
        if not url.startswith(prefix):
            return None

        bucket_name, _, key = url[len(prefix):].partition("/")
        if bucket_name not in self._policies_by_name or not key:
            return None

        return BlobReference(bucket=bucket_name, key=key)
