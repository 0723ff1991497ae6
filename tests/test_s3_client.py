"""Tests for S3Client wrapper using moto mock."""

from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from conftest import BUCKET, put_keys
from moto import mock_aws

from s3tree.core.credentials import Profile
from s3tree.core.errors import S3ClientError
from s3tree.core.s3_client import S3Client, _client_config


class TestListBuckets:
    def test_returns_created_buckets(self, profile):
        with mock_aws():
            raw = boto3.client("s3", region_name="us-east-1")
            raw.create_bucket(Bucket="bucket-a")
            raw.create_bucket(Bucket="bucket-b")
            client = S3Client(profile)
            buckets = client.list_buckets()
            assert "bucket-a" in buckets
            assert "bucket-b" in buckets

    def test_create_and_delete_bucket(self, s3_env):
        client, _ = s3_env
        client.create_bucket("fresh-bucket")
        assert "fresh-bucket" in client.list_buckets()
        assert client.is_bucket_empty("fresh-bucket")
        client.delete_bucket("fresh-bucket")
        assert "fresh-bucket" not in client.list_buckets()


class TestListPage:
    def test_returns_contents_and_prefixes(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "file1.txt", "folder/file2.txt")

        page = client.list_page(BUCKET)
        assert [o.key for o in page.contents] == ["file1.txt"]
        assert page.common_prefixes == ["folder/"]
        assert page.next_token is None

    def test_token_only_when_truncated(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "a.txt", "b.txt", "c.txt")

        first = client.list_page(BUCKET, max_keys=2)
        assert len(first.contents) == 2
        assert first.next_token

        second = client.list_page(BUCKET, continuation_token=first.next_token, max_keys=2)
        assert [o.key for o in second.contents] == ["c.txt"]
        assert second.next_token is None

    def test_without_delimiter_lists_recursively(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "a/b/c.txt", "a/d.txt")

        page = client.list_page(BUCKET, prefix="a/", delimiter=None)
        assert sorted(o.key for o in page.contents) == ["a/b/c.txt", "a/d.txt"]
        assert page.common_prefixes == []


class TestListAll:
    def test_pagination(self, s3_env):
        client, raw = s3_env
        # Create >1000 objects to trigger pagination
        for i in range(1050):
            raw.put_object(Bucket=BUCKET, Key=f"obj{i:04d}.txt", Body=b"x")
        listing = client.list_all(BUCKET)
        assert len(listing.contents) == 1050
        assert listing.next_token is None

    def test_prefix_filtering(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "a/1.txt", "a/2.txt", "b/3.txt")

        listing = client.list_all(BUCKET, prefix="a/")
        assert sorted(o.key for o in listing.contents) == ["a/1.txt", "a/2.txt"]

    def test_missing_bucket_raises(self, s3_env):
        client, _ = s3_env
        with pytest.raises(S3ClientError) as exc_info:
            client.list_all("no-such-bucket")
        assert exc_info.value.code == "NoSuchBucket"


class TestExistence:
    def test_object_exists(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "present.txt")
        assert client.object_exists(BUCKET, "present.txt")
        assert not client.object_exists(BUCKET, "absent.txt")

    def test_empty_key_does_not_exist(self, s3_env):
        client, _ = s3_env
        assert not client.object_exists(BUCKET, "")

    def test_prefix_exists_without_marker(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "docs/readme.md")
        assert client.prefix_exists(BUCKET, "docs/")
        assert not client.prefix_exists(BUCKET, "other/")

    def test_malformed_key_counts_as_missing(self, profile):
        boto = MagicMock()
        boto.head_object.side_effect = ClientError(
            {"Error": {"Code": "400", "Message": "Bad Request"}}, "HeadObject"
        )
        client = S3Client(profile, client=boto)
        assert not client.object_exists(BUCKET, "weird??key")

    def test_access_denied_is_raised(self, profile):
        boto = MagicMock()
        boto.head_object.side_effect = ClientError(
            {"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject"
        )
        client = S3Client(profile, client=boto)
        with pytest.raises(S3ClientError) as exc_info:
            client.object_exists(BUCKET, "secret.txt")
        assert exc_info.value.code == "403"

    def test_head_object(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "sized.bin", body=b"12345")
        summary = client.head_object(BUCKET, "sized.bin")
        assert summary.size == 5
        assert summary.last_modified is not None


class TestObjectOperations:
    def test_put_get_round_trip(self, s3_env):
        client, _ = s3_env
        client.put_object(BUCKET, "hello.txt", b"hello world")
        assert client.get_object(BUCKET, "hello.txt").read() == b"hello world"

    def test_stream_body_requires_length(self, s3_env, tmp_path):
        client, _ = s3_env
        path = tmp_path / "f.bin"
        path.write_bytes(b"abc")
        with open(path, "rb") as f, pytest.raises(ValueError):
            client.put_object(BUCKET, "f.bin", f)

    def test_folder_marker(self, s3_env):
        client, raw = s3_env
        key = client.create_folder_marker(BUCKET, "new-folder")
        assert key == "new-folder/"
        head = raw.head_object(Bucket=BUCKET, Key="new-folder/")
        assert head["ContentLength"] == 0

    def test_delete_object(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "doomed.txt")
        client.delete_object(BUCKET, "doomed.txt")
        assert not client.object_exists(BUCKET, "doomed.txt")

    def test_copy_object(self, s3_env):
        client, raw = s3_env
        put_keys(raw, "src.txt", body=b"payload")
        client.copy_object(BUCKET, "src.txt", "dst.txt")
        assert client.get_object(BUCKET, "dst.txt").read() == b"payload"
        assert client.object_exists(BUCKET, "src.txt")

    def test_get_missing_object_raises(self, s3_env):
        client, _ = s3_env
        with pytest.raises(S3ClientError) as exc_info:
            client.get_object(BUCKET, "missing.txt")
        assert "not found" in exc_info.value.user_message.lower()


class TestClientConfig:
    def test_path_style_and_proxy(self):
        profile = Profile("minio", "k", "s", endpoint_url="http://localhost:9000", proxy="http://proxy:3128")
        config = _client_config(profile)
        assert config.s3 == {"addressing_style": "path"}
        assert config.proxies == {"http": "http://proxy:3128", "https": "http://proxy:3128"}

    def test_virtual_hosted_style(self):
        config = _client_config(Profile("aws", "k", "s", path_style=False))
        assert config.s3 is None
