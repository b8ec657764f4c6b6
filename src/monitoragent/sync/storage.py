"""Object store abstraction for dated record files.

This module provides:
- Abstract interface for the bucket operations the reconciler needs
- LocalFSObjectStore for development/testing
- S3ObjectStore for production (AWS, MinIO, any S3-compatible endpoint)
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from monitoragent.core.fingerprint import FileError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# Custom metadata key holding the uploader's SHA-256 fingerprint (hex)
CHECKSUM_METADATA_KEY = "x-amz-meta-sha256"

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})


class StorageError(Exception):
    """Base exception for object store errors."""


class ObjectNotFoundError(StorageError):
    """Raised when an object or bucket does not exist."""


class TransportError(StorageError):
    """Network, authentication or service failure against the object store."""


class IncompleteListingError(TransportError):
    """A listing page was truncated without a continuation token."""


@dataclass(frozen=True)
class ObjectMetadata:
    """Remote object metadata fetched without transferring the body.

    Attributes:
        key: Object key.
        checksum_sha256: Store-computed SHA-256 (base64), empty if the store
            did not compute one.
        custom_sha256: Uploader-supplied SHA-256 (hex) from custom metadata.
        size: Content length in bytes.
        last_modified: Last modification time reported by the store.
    """

    key: str
    checksum_sha256: str | None = None
    custom_sha256: str | None = None
    size: int = 0
    last_modified: datetime | None = None

    @property
    def verifiable(self) -> bool:
        """True if at least one checksum source is populated."""
        return bool(self.checksum_sha256) or bool(self.custom_sha256)


def _write_atomically(dest: Path, chunks: Any) -> None:
    """Write an iterable of byte chunks to dest via a temporary file.

    Readers never observe a partially written file.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in chunks:
                f.write(chunk)
        os.replace(tmp_name, dest)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


class ObjectStore(ABC):
    """Abstract interface for a single bucket of dated record files."""

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Return the bucket name."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where objects are stored."""

    @abstractmethod
    def bucket_exists(self) -> bool:
        """Check whether the bucket exists.

        Returns:
            True if the bucket exists, False if it was not found.

        Raises:
            TransportError: For any failure other than "not found".
        """

    @abstractmethod
    def create_bucket(self, region: str | None = None) -> bool:
        """Create the bucket (best-effort).

        Returns:
            True if the bucket was created, False if creation failed.
        """

    @abstractmethod
    def list_objects(self) -> list[str]:
        """List every object key in the bucket, following pagination.

        Raises:
            TransportError: If the listing fails or is incomplete.
        """

    @abstractmethod
    def head_object(self, key: str) -> ObjectMetadata:
        """Fetch object metadata without the body.

        Raises:
            ObjectNotFoundError: If the object doesn't exist.
            TransportError: For any other failure.
        """

    @abstractmethod
    def get_object(self, key: str, dest: Path) -> None:
        """Download an object to dest, replacing it atomically.

        Raises:
            ObjectNotFoundError: If the object doesn't exist.
            TransportError: For any other failure.
            FileError: If dest cannot be written.
        """

    @abstractmethod
    def put_object(self, key: str, source: Path, fingerprint: str) -> None:
        """Upload source as key, attaching fingerprint as custom metadata.

        Raises:
            TransportError: If the upload fails.
            FileError: If source cannot be read.
        """


class LocalFSObjectStore(ObjectStore):
    """Local filesystem object store for development and testing.

    Objects are stored as files under <base_path>/<bucket>/. Custom metadata
    lives in a sidecar JSON file under <base_path>/<bucket>/.meta/.
    The store never computes checksums itself.
    """

    META_DIRNAME = ".meta"

    def __init__(self, base_path: Path | str, bucket: str = "local") -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory holding buckets.
            bucket: Bucket (sub-directory) name.
        """
        self._base_path = Path(base_path).resolve()
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def location(self) -> str:
        """Return the local storage path."""
        return f"Local filesystem: {self._bucket_path}"

    @property
    def _bucket_path(self) -> Path:
        return self._base_path / self._bucket

    def _object_path(self, key: str) -> Path:
        return self._bucket_path / key

    def _meta_path(self, key: str) -> Path:
        return self._bucket_path / self.META_DIRNAME / f"{key}.json"

    def bucket_exists(self) -> bool:
        return self._bucket_path.is_dir()

    def create_bucket(self, region: str | None = None) -> bool:
        try:
            self._bucket_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Couldn't create bucket %s: %s", self._bucket, e)
            return False
        return True

    def list_objects(self) -> list[str]:
        if not self.bucket_exists():
            raise TransportError(f"Bucket not found: {self._bucket}")
        return sorted(
            p.name
            for p in self._bucket_path.iterdir()
            if p.is_file() and not p.name.startswith(".")
        )

    def head_object(self, key: str) -> ObjectMetadata:
        path = self._object_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object not found: {key}")
        stat = path.stat()
        custom: str | None = None
        meta_path = self._meta_path(key)
        if meta_path.exists():
            custom = json.loads(meta_path.read_text()).get(CHECKSUM_METADATA_KEY)
        return ObjectMetadata(
            key=key,
            custom_sha256=custom,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime),
        )

    def get_object(self, key: str, dest: Path) -> None:
        path = self._object_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object not found: {key}")
        try:
            _write_atomically(dest, [path.read_bytes()])
        except OSError as e:
            raise FileError(f"Cannot write {dest}: {e}", dest) from e

    def put_object(self, key: str, source: Path, fingerprint: str) -> None:
        try:
            data = source.read_bytes()
        except OSError as e:
            raise FileError(f"Cannot read {source}: {e}", source) from e
        if not self.bucket_exists():
            raise TransportError(f"Bucket not found: {self._bucket}")
        try:
            _write_atomically(self._object_path(key), [data])
            meta_path = self._meta_path(key)
            meta_path.parent.mkdir(exist_ok=True)
            meta_path.write_text(json.dumps({CHECKSUM_METADATA_KEY: fingerprint}))
        except OSError as e:
            raise TransportError(f"Couldn't store {key}: {e}") from e


class S3ObjectStore(ObjectStore):
    """S3-compatible object store (AWS, MinIO, Ceph, etc.)."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
    ) -> None:
        """Initialize S3 storage.

        Uses path-style addressing so custom endpoints work without
        per-bucket DNS.

        Args:
            bucket: S3 bucket name.
            endpoint_url: Custom endpoint URL (for MinIO, etc.).
            access_key: AWS access key ID (default credential chain if None).
            secret_key: AWS secret access key.
            region: AWS region (default: us-east-1).
        """
        import boto3
        from botocore.config import Config

        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._region = region
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(s3={"addressing_style": "path"}),
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def location(self) -> str:
        """Return the S3 bucket location."""
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}/{self._bucket}"
        return f"S3: s3://{self._bucket}"

    @staticmethod
    def _error_code(error: Exception) -> str:
        response = getattr(error, "response", None) or {}
        return str(response.get("Error", {}).get("Code", ""))

    def _transport_error(self, action: str, error: Exception) -> TransportError:
        return TransportError(f"Couldn't {action} in bucket {self._bucket}: {error}")

    def bucket_exists(self) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError as e:
            if self._error_code(e) in _NOT_FOUND_CODES:
                logger.info("Bucket %s does not exist", self._bucket)
                return False
            raise self._transport_error("check bucket", e) from e
        except BotoCoreError as e:
            raise self._transport_error("check bucket", e) from e
        logger.debug("Bucket %s exists", self._bucket)
        return True

    def create_bucket(self, region: str | None = None) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        region = region or self._region
        kwargs: dict[str, Any] = {"Bucket": self._bucket}
        # us-east-1 rejects an explicit location constraint
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            self._client.create_bucket(**kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error("Couldn't create bucket %s in region %s: %s", self._bucket, region, e)
            return False
        logger.info("Created bucket %s in region %s", self._bucket, region)
        return True

    def list_objects(self) -> list[str]:
        from botocore.exceptions import BotoCoreError, ClientError

        keys: list[str] = []
        kwargs: dict[str, Any] = {"Bucket": self._bucket}
        while True:
            try:
                response = self._client.list_objects_v2(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise self._transport_error("list objects", e) from e
            keys.extend(obj["Key"] for obj in response.get("Contents", []))
            if not response.get("IsTruncated"):
                return keys
            token = response.get("NextContinuationToken")
            if not token:
                raise IncompleteListingError(
                    f"Listing of bucket {self._bucket} truncated after {len(keys)} keys "
                    "without a continuation token"
                )
            kwargs["ContinuationToken"] = token

    def head_object(self, key: str) -> ObjectMetadata:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client.head_object(
                Bucket=self._bucket,
                Key=key,
                ChecksumMode="ENABLED",
            )
        except ClientError as e:
            if self._error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {key}") from e
            raise self._transport_error(f"head {key}", e) from e
        except BotoCoreError as e:
            raise self._transport_error(f"head {key}", e) from e
        metadata = response.get("Metadata") or {}
        return ObjectMetadata(
            key=key,
            checksum_sha256=response.get("ChecksumSHA256") or None,
            custom_sha256=metadata.get(CHECKSUM_METADATA_KEY) or None,
            size=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
        )

    def get_object(self, key: str, dest: Path) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if self._error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {key}") from e
            raise self._transport_error(f"get {key}", e) from e
        except BotoCoreError as e:
            raise self._transport_error(f"get {key}", e) from e

        body = response["Body"]
        try:
            _write_atomically(dest, body.iter_chunks())
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error(f"read body of {key}", e) from e
        except OSError as e:
            raise FileError(f"Cannot write {dest}: {e}", dest) from e
        finally:
            body.close()

    def put_object(self, key: str, source: Path, fingerprint: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            with open(source, "rb") as f:
                self._client.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=f,
                    Metadata={CHECKSUM_METADATA_KEY: fingerprint},
                )
        except OSError as e:
            raise FileError(f"Cannot read {source}: {e}", source) from e
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error(f"put {key}", e) from e


def create_object_store(config: dict[str, str | None]) -> ObjectStore:
    """Factory function to create an object store from configuration.

    Args:
        config: Storage configuration dict with keys:
            - type: "local" or "s3"
            - For local: local_path, bucket
            - For S3: bucket, endpoint_url, access_key, secret_key, region

    Returns:
        Configured ObjectStore instance.

    Raises:
        ValueError: If storage type is unknown or the bucket is missing.
    """
    storage_type = config.get("type", "s3")

    if storage_type == "local":
        local_path = config.get("local_path") or "./objects"
        return LocalFSObjectStore(local_path, bucket=config.get("bucket") or "local")

    if storage_type == "s3":
        bucket = config.get("bucket")
        if not bucket:
            raise ValueError("S3 storage requires 'bucket' configuration")
        return S3ObjectStore(
            bucket=bucket,
            endpoint_url=config.get("endpoint_url"),
            access_key=config.get("access_key"),
            secret_key=config.get("secret_key"),
            region=config.get("region") or "us-east-1",
        )

    raise ValueError(f"Unknown storage type: {storage_type}")
