"""Thin, stateless S3 client wrapping boto3."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from s3tree.constants import DELIMITER
from s3tree.core.errors import S3ClientError, error_code, is_missing_key_error, translate_error
from s3tree.models.entries import ObjectSummary, RawListing

if TYPE_CHECKING:
    from s3tree.core.credentials import Profile

logger = logging.getLogger("s3tree.s3_client")


def _client_config(profile: Profile) -> Config:
    options: dict = {"signature_version": "s3v4"}
    if profile.path_style:
        options["s3"] = {"addressing_style": "path"}
    if profile.proxy:
        options["proxies"] = {"http": profile.proxy, "https": profile.proxy}
    return Config(**options)


def _summary(obj: dict) -> ObjectSummary:
    return ObjectSummary(
        key=obj["Key"],
        size=obj.get("Size", 0) or 0,
        last_modified=obj.get("LastModified"),
    )


class S3Client:
    """Wraps the boto3 S3 client with error translation and logging.

    Every method is a single primitive against the store; listing helpers that
    follow continuation tokens fetch pages strictly in order.
    """

    def __init__(self, profile: Profile, client=None) -> None:
        self._profile_name = profile.name
        if client is not None:
            self._client = client
            return
        endpoint = profile.endpoint_url or None
        config = _client_config(profile)
        if profile.is_aws_profile:
            session = boto3.Session(profile_name=profile.name)
            self._client = session.client(
                "s3",
                region_name=profile.region or None,
                endpoint_url=endpoint,
                config=config,
            )
        else:
            self._client = boto3.client(
                "s3",
                aws_access_key_id=profile.access_key_id,
                aws_secret_access_key=profile.secret_access_key,
                region_name=profile.region or "us-east-1",
                endpoint_url=endpoint,
                config=config,
            )
        logger.info(
            "S3Client created for profile '%s' region '%s' endpoint='%s' (aws_profile=%s)",
            profile.name,
            profile.region,
            profile.endpoint_url,
            profile.is_aws_profile,
        )

    def _handle_error(self, exc: Exception, operation: str) -> None:
        user_msg, detail = translate_error(exc)
        logger.error("S3 operation '%s' failed: %s", operation, detail)
        raise S3ClientError(user_msg, detail, error_code(exc)) from exc

    # --- Bucket operations ---

    def list_buckets(self) -> list[str]:
        try:
            logger.debug("list_buckets")
            response = self._client.list_buckets()
            return [b["Name"] for b in response.get("Buckets", [])]
        except Exception as e:
            self._handle_error(e, "list_buckets")

    def create_bucket(self, bucket: str, region: str = "") -> None:
        try:
            logger.debug("create_bucket bucket=%s region=%s", bucket, region)
            kwargs: dict = {"Bucket": bucket}
            if region and region != "us-east-1":
                kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
            self._client.create_bucket(**kwargs)
        except Exception as e:
            self._handle_error(e, "create_bucket")

    def delete_bucket(self, bucket: str) -> None:
        try:
            logger.debug("delete_bucket bucket=%s", bucket)
            self._client.delete_bucket(Bucket=bucket)
        except Exception as e:
            self._handle_error(e, "delete_bucket")

    def is_bucket_empty(self, bucket: str) -> bool:
        try:
            response = self._client.list_objects_v2(Bucket=bucket, MaxKeys=1)
            return not response.get("Contents") and not response.get("CommonPrefixes")
        except Exception as e:
            self._handle_error(e, "is_bucket_empty")

    # --- Listing ---

    def list_page(
        self,
        bucket: str,
        prefix: str = "",
        delimiter: str | None = DELIMITER,
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> RawListing:
        """Fetch a single listing page. ``next_token`` is set when more pages exist."""
        try:
            logger.debug(
                "list_page bucket=%s prefix='%s' delimiter=%r token=%s max_keys=%s",
                bucket,
                prefix,
                delimiter,
                bool(continuation_token),
                max_keys,
            )
            kwargs: dict = {"Bucket": bucket, "Prefix": prefix}
            if delimiter:
                kwargs["Delimiter"] = delimiter
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token
            if max_keys:
                kwargs["MaxKeys"] = max_keys
            response = self._client.list_objects_v2(**kwargs)
            next_token = None
            if response.get("IsTruncated"):
                next_token = response.get("NextContinuationToken")
            return RawListing(
                contents=[_summary(obj) for obj in response.get("Contents", [])],
                common_prefixes=[cp["Prefix"] for cp in response.get("CommonPrefixes", [])],
                next_token=next_token,
            )
        except Exception as e:
            self._handle_error(e, "list_page")

    def iter_pages(
        self, bucket: str, prefix: str = "", delimiter: str | None = DELIMITER
    ) -> Iterator[RawListing]:
        """Yield every page of a listing, following continuation tokens in order."""
        token = None
        page_count = 0
        while True:
            page = self.list_page(bucket, prefix, delimiter, token)
            page_count += 1
            yield page
            if not page.next_token:
                break
            token = page.next_token
        logger.debug("iter_pages bucket=%s prefix='%s' pages=%d", bucket, prefix, page_count)

    def list_all(
        self, bucket: str, prefix: str = "", delimiter: str | None = DELIMITER
    ) -> RawListing:
        """Enumerate a prefix to exhaustion and merge the pages into one listing."""
        merged = RawListing()
        for page in self.iter_pages(bucket, prefix, delimiter):
            merged.contents.extend(page.contents)
            merged.common_prefixes.extend(page.common_prefixes)
        return merged

    # --- Existence probes ---

    def head_object(self, bucket: str, key: str) -> ObjectSummary:
        try:
            logger.debug("head_object bucket=%s key='%s'", bucket, key)
            resp = self._client.head_object(Bucket=bucket, Key=key)
            return ObjectSummary(
                key=key,
                size=resp.get("ContentLength", 0),
                last_modified=resp.get("LastModified"),
            )
        except Exception as e:
            self._handle_error(e, "head_object")

    def object_exists(self, bucket: str, key: str) -> bool:
        """HEAD the key. "Not found" and malformed-key responses both mean False."""
        if not key:
            return False
        try:
            logger.debug("object_exists bucket=%s key='%s'", bucket, key)
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if is_missing_key_error(e):
                return False
            self._handle_error(e, "object_exists")
        except Exception as e:
            self._handle_error(e, "object_exists")

    def prefix_exists(self, bucket: str, prefix: str) -> bool:
        """True when any key (child or folder marker) lives under *prefix*."""
        try:
            logger.debug("prefix_exists bucket=%s prefix='%s'", bucket, prefix)
            response = self._client.list_objects_v2(Bucket=bucket, Prefix=prefix, MaxKeys=1)
            return bool(response.get("Contents") or response.get("CommonPrefixes"))
        except Exception as e:
            self._handle_error(e, "prefix_exists")

    # --- Single object operations ---

    def get_object(self, bucket: str, key: str):
        """Return the streaming body of an object."""
        try:
            logger.debug("get_object bucket=%s key='%s'", bucket, key)
            return self._client.get_object(Bucket=bucket, Key=key)["Body"]
        except Exception as e:
            self._handle_error(e, "get_object")

    def put_object(
        self, bucket: str, key: str, body: bytes | BinaryIO, content_length: int | None = None
    ) -> None:
        """Upload an object in a single request with an explicit content length."""
        if content_length is None:
            if not isinstance(body, bytes | bytearray):
                raise ValueError("content_length is required for stream bodies")
            content_length = len(body)
        try:
            logger.debug("put_object bucket=%s key='%s' size=%d", bucket, key, content_length)
            self._client.put_object(
                Bucket=bucket, Key=key, Body=body, ContentLength=content_length
            )
        except Exception as e:
            self._handle_error(e, "put_object")

    def create_folder_marker(self, bucket: str, key: str) -> str:
        """Write the zero-byte object that represents an (empty) folder. Returns its key."""
        if not key.endswith(DELIMITER):
            key += DELIMITER
        try:
            logger.debug("create_folder_marker bucket=%s key='%s'", bucket, key)
            self._client.put_object(Bucket=bucket, Key=key, Body=b"", ContentLength=0)
            return key
        except Exception as e:
            self._handle_error(e, "create_folder_marker")

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            logger.debug("delete_object bucket=%s key='%s'", bucket, key)
            self._client.delete_object(Bucket=bucket, Key=key)
        except Exception as e:
            self._handle_error(e, "delete_object")

    def copy_object(self, bucket: str, src_key: str, dst_key: str) -> None:
        """Server-side copy within one bucket."""
        try:
            logger.debug("copy_object %s/%s -> %s", bucket, src_key, dst_key)
            self._client.copy_object(
                Bucket=bucket,
                Key=dst_key,
                CopySource={"Bucket": bucket, "Key": src_key},
                MetadataDirective="COPY",
            )
        except Exception as e:
            self._handle_error(e, "copy_object")
