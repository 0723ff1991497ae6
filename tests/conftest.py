import os
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from s3tree.core.credentials import Profile
from s3tree.core.s3_client import S3Client

# Run Qt headless so the suite works without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

BUCKET = "test-bucket"


@pytest.fixture(autouse=True)
def mock_keyring(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Mock the keyring module with a simple dict backend."""
    store: dict[str, str] = {}

    def get_password(service: str, key: str) -> str | None:
        return store.get(f"{service}:{key}")

    def set_password(service: str, key: str, value: str) -> None:
        store[f"{service}:{key}"] = value

    def delete_password(service: str, key: str) -> None:
        store.pop(f"{service}:{key}", None)

    monkeypatch.setattr("keyring.get_password", get_password)
    monkeypatch.setattr("keyring.set_password", set_password)
    monkeypatch.setattr("keyring.delete_password", delete_password)
    return store


@pytest.fixture(autouse=True)
def _no_real_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent tests from writing to the real ~/.s3tree directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr("s3tree.constants.APP_DIR", tmp_path / ".s3tree")
    monkeypatch.setattr("s3tree.constants.LOG_DIR", tmp_path / ".s3tree" / "logs")
    monkeypatch.setattr("s3tree.constants.LOG_FILE", tmp_path / ".s3tree" / "logs" / "s3tree.log")


@pytest.fixture
def profile() -> Profile:
    return Profile(
        name="test",
        access_key_id="testing",
        secret_access_key="testing",
        region="us-east-1",
    )


@pytest.fixture
def s3_env(profile):
    """A mocked S3 environment with a test bucket: (S3Client, raw boto3 client)."""
    with mock_aws():
        raw = boto3.client("s3", region_name="us-east-1")
        raw.create_bucket(Bucket=BUCKET)
        yield S3Client(profile), raw


def put_keys(raw, *keys: str, body: bytes = b"x") -> None:
    """Create objects; keys ending in '/' become zero-byte folder markers."""
    for key in keys:
        raw.put_object(Bucket=BUCKET, Key=key, Body=b"" if key.endswith("/") else body)


def all_keys(raw) -> list[str]:
    keys: list[str] = []
    for page in raw.get_paginator("list_objects_v2").paginate(Bucket=BUCKET):
        keys.extend(obj["Key"] for obj in page.get("Contents", []))
    return sorted(keys)
