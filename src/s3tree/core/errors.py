"""Error types for the engine and translation of botocore failures to plain language."""

from __future__ import annotations

from pathlib import Path

from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
    ProxyConnectionError,
    ReadTimeoutError,
)

# AWS error code -> (what went wrong, what the user can do about it)
ERROR_MESSAGES: dict[str, tuple[str, str]] = {
    "InvalidAccessKeyId": ("Invalid access key.", "Check the Access Key ID of this connection."),
    "SignatureDoesNotMatch": ("Invalid secret key.", "Check the Secret Access Key of this connection."),
    "ExpiredToken": ("Your credentials have expired.", "Update the credentials of this connection."),
    "AccessDenied": ("Access denied.", "This connection may not act on that bucket or key."),
    "AllAccessDisabled": ("Access denied.", "All access to this object has been disabled."),
    "NoSuchBucket": ("Bucket not found.", "It may have been deleted; refresh the bucket list."),
    "NoSuchKey": ("File not found.", "It may have been deleted or moved; refresh the folder."),
    "InvalidBucketName": (
        "Invalid bucket name.",
        "Use 3-63 lowercase letters, digits, dots or hyphens.",
    ),
    "BucketAlreadyExists": ("Bucket name is already taken.", "Bucket names are global; pick another."),
    "BucketAlreadyOwnedByYou": ("You already own a bucket with this name.", ""),
    "BucketNotEmpty": ("Bucket is not empty.", "Delete its contents first."),
    "KeyTooLongError": ("Path is too long.", "Object keys are limited to 1024 bytes."),
    "EntityTooLarge": ("File is too large for a single upload.", "Multipart upload is not supported."),
    "SlowDown": ("The service is throttling requests.", "Lower the number of concurrent transfers."),
    "RequestTimeout": ("The request timed out.", "Check your network connection and retry."),
    "ServiceUnavailable": ("The service is temporarily unavailable.", "Retry in a moment."),
    "InternalError": ("The service reported an internal error.", "Retry in a moment."),
}

_CONNECTION_ERRORS = (EndpointConnectionError, ProxyConnectionError)
_TIMEOUT_ERRORS = (ConnectTimeoutError, ReadTimeoutError)

# HEAD responses carry no error body, so only the status code survives as the code.
_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_MALFORMED_CODES = frozenset({"400", "BadRequest", "InvalidArgument"})


class S3ClientError(Exception):
    """Wraps an S3 error with user-facing message, raw detail and the AWS error code."""

    def __init__(self, user_message: str, detail: str, code: str = "") -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.detail = detail
        self.code = code


class NameResolutionError(Exception):
    """Raised when no free name is found within the probe limit."""

    def __init__(self, candidate: str, attempts: int) -> None:
        super().__init__(f"No free name for '{candidate}' after {attempts} attempts")
        self.candidate = candidate
        self.attempts = attempts


class ScanError(Exception):
    """Raised when the scan phase of a batch fails; nothing has been modified yet."""

    def __init__(self, errors: list[tuple[str, Exception]]) -> None:
        name, first = errors[0]
        message = f"Failed to scan '{name}': {first}"
        if len(errors) > 1:
            message += f" (and {len(errors) - 1} more)"
        super().__init__(message)
        self.errors = errors


class TransferCancelledError(RuntimeError):
    """Raised when a batch is cancelled before any transfer started."""


class UnsafeLocalPathError(Exception):
    """Raised when a key would be written outside the chosen download directory."""

    def __init__(self, key: str, root: Path) -> None:
        super().__init__(f"'{key}' would be saved outside {root}")
        self.key = key
        self.root = root


class FolderOperationError(Exception):
    """Raised when some keys of a folder delete or copy failed."""

    def __init__(self, prefix: str, failed_keys: list[str]) -> None:
        super().__init__(
            f"{len(failed_keys)} object(s) under '{prefix}' could not be processed"
        )
        self.prefix = prefix
        self.failed_keys = failed_keys


def error_code(exc: BaseException) -> str:
    """Return the AWS error code carried by *exc*, or an empty string."""
    if isinstance(exc, S3ClientError):
        return exc.code
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        return str(response.get("Error", {}).get("Code", ""))
    return ""


def is_missing_key_error(exc: BaseException) -> bool:
    """True for responses that mean "no such object" during an existence probe.

    Malformed-key (400) responses count as missing too: odd keys are common
    while probing candidate names and must not stop resolution.
    """
    code = error_code(exc)
    return code in _MISSING_CODES or code in _MALFORMED_CODES


def translate_error(exc: Exception) -> tuple[str, str]:
    """Return ``(user_message, raw_detail)`` for any failure the engine surfaces."""
    if isinstance(exc, S3ClientError):
        return exc.user_message, exc.detail

    detail = str(exc)
    if isinstance(
        exc,
        NameResolutionError
        | ScanError
        | TransferCancelledError
        | FolderOperationError
        | UnsafeLocalPathError,
    ):
        return detail, detail

    if isinstance(getattr(exc, "response", None), dict):
        code = error_code(exc)
        if code in ERROR_MESSAGES:
            problem, hint = ERROR_MESSAGES[code]
            return (f"{problem} {hint}" if hint else problem), detail
        message = exc.response.get("Error", {}).get("Message", "")
        return (f"Storage error: {message}" if message else "A storage error occurred."), detail

    if isinstance(exc, _CONNECTION_ERRORS):
        return "Could not connect to the storage endpoint. Check the address and your network.", detail
    if isinstance(exc, _TIMEOUT_ERRORS):
        return "The storage endpoint did not answer in time.", detail
    if isinstance(exc, OSError):
        return f"Local file error: {exc.strerror or exc}", detail
    return "An unexpected error occurred.", detail
