"""Connection profiles: OS keyring storage and AWS CLI profile discovery."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields

import botocore.session
import keyring

from s3tree.constants import KEYRING_SERVICE
from s3tree.core.errors import translate_error
from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.credentials")

INDEX_ENTRY = "profiles"


class KeyringError(Exception):
    """The OS keyring backend is missing or refused the request."""


@dataclass
class Profile:
    """How to reach one S3-compatible service."""

    name: str
    access_key_id: str = ""
    secret_access_key: str = ""
    region: str = ""
    endpoint_url: str = ""  # MinIO, Ceph, Wasabi, ...
    proxy: str = ""
    path_style: bool = True
    is_aws_profile: bool = False  # credentials come from ~/.aws via boto3.Session

    def to_json(self) -> str:
        data = asdict(self)
        del data["name"]
        return json.dumps(data)

    @classmethod
    def from_json(cls, name: str, raw: str) -> Profile:
        data = json.loads(raw)
        known = {f.name for f in fields(cls)} - {"name"}
        return cls(name=name, **{k: v for k, v in data.items() if k in known})


@dataclass
class ConnectionResult:
    success: bool
    buckets: list[str] = field(default_factory=list)
    error_message: str = ""
    error_detail: str = ""


def discover_aws_profiles() -> list[str]:
    """Names of the profiles in ~/.aws/config and ~/.aws/credentials, sorted."""
    try:
        names = sorted(botocore.session.Session().available_profiles)
    except Exception:
        logger.debug("AWS profile discovery failed", exc_info=True)
        return []
    logger.debug("Found %d AWS profiles", len(names))
    return names


def _entry(name: str) -> str:
    return f"profile:{name}"


class CredentialStore:
    """Custom connection profiles, one JSON blob per profile plus a name index.

    Reads degrade to "nothing stored" when the keyring is unavailable; writes
    raise KeyringError so the caller can tell the user their secret was not kept.
    """

    def _read(self, entry: str) -> str | None:
        try:
            return keyring.get_password(KEYRING_SERVICE, entry)
        except Exception:
            logger.warning("Keyring read of '%s' failed", entry, exc_info=True)
            return None

    def _write_index(self, names: list[str]) -> None:
        keyring.set_password(KEYRING_SERVICE, INDEX_ENTRY, json.dumps(names))

    def list_profiles(self) -> list[str]:
        raw = self._read(INDEX_ENTRY)
        try:
            names = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            logger.error("Profile index in the keyring is corrupt")
            return []
        return names if isinstance(names, list) else []

    def get_profile(self, name: str) -> Profile | None:
        raw = self._read(_entry(name))
        if not raw:
            return None
        try:
            return Profile.from_json(name, raw)
        except (json.JSONDecodeError, TypeError, AttributeError):
            logger.error("Stored profile '%s' is corrupt", name)
            return None

    def save_profile(self, profile: Profile) -> None:
        """Store or overwrite *profile*. Raises KeyringError on backend failure."""
        try:
            keyring.set_password(KEYRING_SERVICE, _entry(profile.name), profile.to_json())
            names = self.list_profiles()
            if profile.name not in names:
                self._write_index([*names, profile.name])
        except Exception as e:
            logger.error("Could not save profile '%s'", profile.name, exc_info=True)
            raise KeyringError(str(e)) from e
        logger.info("Saved profile '%s' endpoint='%s'", profile.name, profile.endpoint_url)

    def delete_profile(self, name: str) -> None:
        """Forget *name*. Raises KeyringError on backend failure."""
        try:
            keyring.delete_password(KEYRING_SERVICE, _entry(name))
            names = self.list_profiles()
            if name in names:
                self._write_index([n for n in names if n != name])
        except Exception as e:
            logger.error("Could not delete profile '%s'", name, exc_info=True)
            raise KeyringError(str(e)) from e
        logger.info("Deleted profile '%s'", name)


def check_connection(profile: Profile) -> ConnectionResult:
    """List buckets with *profile*; failures come back in the result."""
    try:
        buckets = S3Client(profile).list_buckets()
    except Exception as e:
        user_msg, detail = translate_error(e)
        logger.warning("Profile '%s' cannot connect: %s", profile.name, detail)
        return ConnectionResult(False, error_message=user_msg, error_detail=detail)
    logger.info("Profile '%s' connected, %d buckets", profile.name, len(buckets))
    return ConnectionResult(True, buckets=buckets)
