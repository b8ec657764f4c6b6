"""Tests for object store implementations."""

from __future__ import annotations

import hashlib
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from monitoragent.core.fingerprint import FileError
from monitoragent.sync.storage import (
    CHECKSUM_METADATA_KEY,
    IncompleteListingError,
    LocalFSObjectStore,
    ObjectNotFoundError,
    ObjectStore,
    S3ObjectStore,
    TransportError,
    create_object_store,
)


@pytest.fixture
def source(tmp_path: Path) -> Path:
    """A local dated file to upload."""
    path = tmp_path / "2024-05-01"
    path.write_bytes(b"2024-05-01 10:00:00,500,monitor\n")
    return path


class TestLocalFSObjectStore:
    """Tests for LocalFSObjectStore implementation."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> LocalFSObjectStore:
        """Create a LocalFSObjectStore with its bucket."""
        store = LocalFSObjectStore(tmp_path / "objects", bucket="health")
        store.create_bucket()
        return store

    def test_bucket_exists(self, tmp_path: Path) -> None:
        """create_bucket() should make the bucket visible."""
        store = LocalFSObjectStore(tmp_path / "objects", bucket="health")
        assert store.bucket_exists() is False
        assert store.create_bucket() is True
        assert store.bucket_exists() is True

    def test_put_and_head(self, store: LocalFSObjectStore, source: Path) -> None:
        """put_object() should store the fingerprint as custom metadata."""
        store.put_object("2024-05-01_host", source, "ab" * 32)

        meta = store.head_object("2024-05-01_host")

        assert meta.key == "2024-05-01_host"
        assert meta.custom_sha256 == "ab" * 32
        assert meta.checksum_sha256 is None
        assert meta.size == source.stat().st_size

    def test_head_missing(self, store: LocalFSObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.head_object("2024-05-01_host")

    def test_get_object(self, store: LocalFSObjectStore, source: Path, tmp_path: Path) -> None:
        """get_object() should write the content to dest, creating parents."""
        store.put_object("2024-05-01_host", source, "ab" * 32)
        dest = tmp_path / "mirror" / "2024-05-01_host"

        store.get_object("2024-05-01_host", dest)

        assert dest.read_bytes() == source.read_bytes()

    def test_get_missing(self, store: LocalFSObjectStore, tmp_path: Path) -> None:
        dest = tmp_path / "mirror" / "2024-05-01_host"
        with pytest.raises(ObjectNotFoundError):
            store.get_object("2024-05-01_host", dest)
        assert not dest.exists()

    def test_list_objects(self, store: LocalFSObjectStore, source: Path) -> None:
        """list_objects() should list keys, not sidecar metadata."""
        store.put_object("2024-05-02_b", source, "0" * 64)
        store.put_object("2024-05-01_a", source, "0" * 64)

        assert store.list_objects() == ["2024-05-01_a", "2024-05-02_b"]

    def test_list_missing_bucket(self, tmp_path: Path) -> None:
        store = LocalFSObjectStore(tmp_path / "objects", bucket="health")
        with pytest.raises(TransportError):
            store.list_objects()

    def test_put_missing_source(self, store: LocalFSObjectStore, tmp_path: Path) -> None:
        with pytest.raises(FileError):
            store.put_object("2024-05-01_host", tmp_path / "missing", "0" * 64)

    def test_put_missing_bucket(self, tmp_path: Path, source: Path) -> None:
        store = LocalFSObjectStore(tmp_path / "objects", bucket="health")
        with pytest.raises(TransportError):
            store.put_object("2024-05-01_host", source, "0" * 64)

    def test_location(self, store: LocalFSObjectStore) -> None:
        assert "Local filesystem" in store.location


class TestS3ObjectStore:
    """Tests for S3ObjectStore using moto mock."""

    @pytest.fixture
    def s3_mock(self) -> Generator[None, None, None]:
        """Set up moto S3 mock with a bucket."""
        pytest.importorskip("moto")
        import boto3
        from moto import mock_aws

        with mock_aws():
            client = boto3.client("s3", region_name="us-east-1")
            client.create_bucket(Bucket="test-bucket")
            yield

    @pytest.fixture
    def store(self, s3_mock: None) -> S3ObjectStore:
        """Create an S3ObjectStore bound to the mocked bucket."""
        return S3ObjectStore(bucket="test-bucket", region="us-east-1")

    def test_bucket_exists(self, store: S3ObjectStore) -> None:
        assert store.bucket_exists() is True

    def test_bucket_not_found(self, s3_mock: None) -> None:
        """A missing bucket is reported as False, not as an error."""
        store = S3ObjectStore(bucket="missing-bucket", region="us-east-1")
        assert store.bucket_exists() is False

    def test_create_bucket(self, s3_mock: None) -> None:
        """create_bucket() should work in us-east-1 without a location constraint."""
        store = S3ObjectStore(bucket="new-bucket", region="us-east-1")
        assert store.create_bucket() is True
        assert store.bucket_exists() is True

    def test_create_bucket_other_region(self, s3_mock: None) -> None:
        store = S3ObjectStore(bucket="eu-bucket", region="eu-west-1")
        assert store.create_bucket("eu-west-1") is True
        assert store.bucket_exists() is True

    def test_put_and_head(self, store: S3ObjectStore, source: Path) -> None:
        """put_object() should attach the fingerprint as custom metadata."""
        digest = hashlib.sha256(source.read_bytes()).hexdigest()
        store.put_object("2024-05-01_host", source, digest)

        meta = store.head_object("2024-05-01_host")

        assert meta.custom_sha256 == digest
        assert meta.size == source.stat().st_size

    def test_metadata_key_on_the_wire(self, store: S3ObjectStore, source: Path) -> None:
        """Other agents read the fingerprint under the same metadata name."""
        import boto3

        store.put_object("2024-05-01_host", source, "ab" * 32)

        response = boto3.client("s3", region_name="us-east-1").head_object(
            Bucket="test-bucket", Key="2024-05-01_host"
        )
        assert response["Metadata"][CHECKSUM_METADATA_KEY] == "ab" * 32

    def test_head_missing(self, store: S3ObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.head_object("2024-05-01_host")

    def test_get_object(self, store: S3ObjectStore, source: Path, tmp_path: Path) -> None:
        store.put_object("2024-05-01_host", source, "ab" * 32)
        dest = tmp_path / "mirror" / "2024-05-01_host"

        store.get_object("2024-05-01_host", dest)

        assert dest.read_bytes() == source.read_bytes()
        # No temporary files left behind
        assert [p.name for p in dest.parent.iterdir()] == ["2024-05-01_host"]

    def test_get_missing(self, store: S3ObjectStore, tmp_path: Path) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.get_object("2024-05-01_host", tmp_path / "dest")

    def test_list_objects(self, store: S3ObjectStore, source: Path) -> None:
        store.put_object("2024-05-01_a", source, "0" * 64)
        store.put_object("2024-05-02_b", source, "0" * 64)

        assert sorted(store.list_objects()) == ["2024-05-01_a", "2024-05-02_b"]

    def test_list_missing_bucket(self, s3_mock: None) -> None:
        store = S3ObjectStore(bucket="missing-bucket", region="us-east-1")
        with pytest.raises(TransportError):
            store.list_objects()

    def test_location(self, store: S3ObjectStore) -> None:
        assert store.location == "S3: s3://test-bucket"


class TestS3Pagination:
    """Tests for list_objects() pagination with a stubbed client."""

    @pytest.fixture
    def store(self) -> S3ObjectStore:
        store = S3ObjectStore(bucket="test-bucket", access_key="AK", secret_key="SK")
        store._client = MagicMock()
        return store

    def test_follows_continuation_tokens(self, store: S3ObjectStore) -> None:
        """Should request every page until the listing is complete."""
        store._client.list_objects_v2.side_effect = [
            {"Contents": [{"Key": "a"}, {"Key": "b"}], "IsTruncated": True, "NextContinuationToken": "t1"},
            {"Contents": [{"Key": "c"}], "IsTruncated": True, "NextContinuationToken": "t2"},
            {"Contents": [{"Key": "d"}], "IsTruncated": False},
        ]

        assert store.list_objects() == ["a", "b", "c", "d"]
        calls = store._client.list_objects_v2.call_args_list
        assert calls[1].kwargs["ContinuationToken"] == "t1"
        assert calls[2].kwargs["ContinuationToken"] == "t2"

    def test_empty_bucket(self, store: S3ObjectStore) -> None:
        store._client.list_objects_v2.return_value = {"IsTruncated": False}
        assert store.list_objects() == []

    def test_truncated_without_token(self, store: S3ObjectStore) -> None:
        """A truncated page without a token must not pass as a full listing."""
        store._client.list_objects_v2.return_value = {
            "Contents": [{"Key": "a"}],
            "IsTruncated": True,
        }
        with pytest.raises(IncompleteListingError):
            store.list_objects()


class TestCreateObjectStore:
    """Tests for create_object_store factory."""

    def test_create_local(self, tmp_path: Path) -> None:
        store = create_object_store({"type": "local", "local_path": str(tmp_path), "bucket": "b"})
        assert isinstance(store, LocalFSObjectStore)
        assert store.bucket == "b"

    def test_create_s3(self) -> None:
        pytest.importorskip("moto")
        from moto import mock_aws

        with mock_aws():
            store = create_object_store(
                {
                    "type": "s3",
                    "bucket": "my-bucket",
                    "endpoint_url": None,
                    "access_key": None,
                    "secret_key": None,
                    "region": "us-east-1",
                }
            )
        assert isinstance(store, S3ObjectStore)
        assert isinstance(store, ObjectStore)

    def test_s3_requires_bucket(self) -> None:
        with pytest.raises(ValueError, match="bucket"):
            create_object_store({"type": "s3"})

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown storage type"):
            create_object_store({"type": "ftp"})
