"""Listing entries, transfer items and batch bookkeeping."""

from __future__ import annotations

import posixpath
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class Entry:
    """One browsable item: a file object or a synthetic folder."""

    name: str
    key: str
    is_folder: bool
    size: int = 0
    last_modified: datetime | None = None


@dataclass(frozen=True)
class ObjectSummary:
    """A content key as returned by a listing call."""

    key: str
    size: int = 0
    last_modified: datetime | None = None


@dataclass
class RawListing:
    """One listing response before folder projection."""

    contents: list[ObjectSummary] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_token: str | None = None


@dataclass
class ListPage:
    """One page of a listing; ``next_marker`` is None on the last page."""

    entries: list[Entry] = field(default_factory=list)
    next_marker: str | None = None


class TransferKind(Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE = "delete"
    COPY = "copy"


@dataclass
class TransferItem:
    """A unit of work for the transfer coordinator.

    ``source`` and ``destination`` depend on ``kind``:

    - upload: local path -> key (or destination prefix for folder items)
    - download: key -> local path (or local directory for folder items)
    - delete: key -> unused
    - copy: key -> key (or destination prefix for folder items)

    A download with ``local_root`` fails instead of writing outside that directory.
    """

    kind: TransferKind
    source: str | Path
    destination: str | Path = ""
    expected_size: int = 0
    is_folder: bool = False
    name: str = ""
    pre_resolved: bool = False
    local_root: Path | None = None

    def __post_init__(self) -> None:
        if not self.name:
            self.name = _label(str(self.source))


def _label(path: str) -> str:
    stripped = path.rstrip("/\\")
    return posixpath.basename(stripped.replace("\\", "/")) or path


class ProgressState:
    """Byte and item counters shared by the workers of one batch."""

    def __init__(self, total_bytes: int = 0, total_items: int = 0) -> None:
        self.total_bytes = total_bytes
        self.total_items = total_items
        self._transferred = 0
        self._completed = 0
        self._lock = threading.Lock()

    @property
    def transferred_bytes(self) -> int:
        with self._lock:
            return self._transferred

    @property
    def completed_items(self) -> int:
        with self._lock:
            return self._completed

    def add(self, nbytes: int) -> tuple[int, int]:
        """Record one finished item of *nbytes*. Returns (transferred, completed)."""
        with self._lock:
            self._transferred = min(self._transferred + nbytes, self.total_bytes)
            self._completed += 1
            return self._transferred, self._completed

    @property
    def fraction(self) -> float:
        with self._lock:
            if self.total_bytes > 0:
                return self._transferred / self.total_bytes
            if self.total_items > 0:
                return self._completed / self.total_items
            return 1.0

    def __repr__(self) -> str:
        return (
            f"ProgressState({self.transferred_bytes}/{self.total_bytes} bytes, "
            f"{self.completed_items}/{self.total_items} items)"
        )


@dataclass
class FailureRecord:
    item_name: str
    error: Exception
    user_message: str = ""


@dataclass
class BatchResult:
    progress: ProgressState = field(default_factory=ProgressState)
    failures: list[FailureRecord] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled

    def failed_names(self) -> list[str]:
        return [f.item_name for f in self.failures]


# --- Display helpers ---

_SIZE_UNITS = "KMGTPE"

_KIND_BY_EXTENSION = {
    **dict.fromkeys((".png", ".jpg", ".jpeg", ".gif", ".bmp", ".svg", ".webp"), "image"),
    **dict.fromkeys((".mp3", ".wav", ".ogg", ".flac"), "audio"),
    **dict.fromkeys((".mp4", ".avi", ".mov", ".mkv", ".webm"), "video"),
    **dict.fromkeys((".zip", ".rar", ".7z", ".tar", ".gz", ".bz2"), "archive"),
    **dict.fromkeys(
        (".txt", ".md", ".log", ".json", ".xml", ".yaml", ".yml", ".ini", ".cfg"), "text"
    ),
}

_PREVIEWABLE = frozenset({".png", ".jpg", ".jpeg", ".gif"})


def format_size(size_bytes: int | None) -> str:
    """Format bytes into a human-readable, 1024-based string."""
    if size_bytes is None:
        return ""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    div, exp = 1024, 0
    n = size_bytes // 1024
    while n >= 1024 and exp < len(_SIZE_UNITS) - 1:
        div *= 1024
        exp += 1
        n //= 1024
    return f"{size_bytes / div:.1f} {_SIZE_UNITS[exp]}B"


def format_timestamp(dt: datetime | None) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S")


def file_kind(name: str) -> str:
    """Coarse file category used for icon selection."""
    return _KIND_BY_EXTENSION.get(posixpath.splitext(name)[1].lower(), "file")


def is_previewable_image(name: str) -> bool:
    return posixpath.splitext(name)[1].lower() in _PREVIEWABLE


def truncate_name(name: str, max_length: int) -> str:
    """Shorten *name* to fit *max_length*, keeping the extension visible."""
    if len(name) <= max_length:
        return name
    base, ext = posixpath.splitext(name)
    available = max_length - 3 - len(ext)
    if available < 1:
        return name[: max(max_length - 3, 0)] + "..."
    return base[:available] + "..." + ext
