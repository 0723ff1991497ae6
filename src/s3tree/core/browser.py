"""Stateful browsing of one bucket: current folder, page history, filter, actions."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from s3tree.constants import DELIMITER
from s3tree.core.name_resolver import NameResolver
from s3tree.core.operations import ItemOperations
from s3tree.core.pager import make_pager
from s3tree.core.settings import EngineSettings
from s3tree.core.transfers import ProgressCallback, TransferCoordinator
from s3tree.models.entries import BatchResult, Entry, TransferItem, TransferKind

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.browser")


def normalize_prefix(prefix: str) -> str:
    prefix = prefix.lstrip(DELIMITER)
    if prefix and not prefix.endswith(DELIMITER):
        prefix += DELIMITER
    return prefix


class BucketBrowser:
    """What the UI drives for one open bucket.

    ``page_markers`` holds the marker of every page visited in the current
    folder, starting with ``""`` for page 1; going back pops it. Listing and
    the bulk actions block, so the UI calls them from a worker (see
    ``BatchRunner`` for batches).
    """

    def __init__(self, client: S3Client, bucket: str, settings: EngineSettings | None = None) -> None:
        self._s3 = client
        self._bucket = bucket
        self._settings = settings or EngineSettings()
        self._pager = make_pager(self._settings.listing_strategy, client)
        self._coordinator = TransferCoordinator(
            client,
            bucket,
            scan_workers=self._settings.scan_workers,
            max_probes=self._settings.max_name_probes,
        )
        self._ops = ItemOperations(
            client, bucket, NameResolver(client, bucket, self._settings.max_name_probes)
        )
        self._page_size = self._settings.page_size
        self._prefix = ""
        self.page_markers: list[str] = [""]
        self._next_marker: str | None = None
        self._entries: list[Entry] = []
        self._filter = ""

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def coordinator(self) -> TransferCoordinator:
        return self._coordinator

    @property
    def entries(self) -> list[Entry]:
        """Entries of the current page, narrowed by the active filter."""
        if not self._filter:
            return list(self._entries)
        return [e for e in self._entries if self._filter in e.name.lower()]

    @property
    def has_next_page(self) -> bool:
        return self._next_marker is not None

    @property
    def current_page(self) -> int:
        return len(self.page_markers)

    # --- Navigation ---

    def _load(self) -> list[Entry]:
        marker = self.page_markers[-1] or None
        page = self._pager.fetch_page(self._bucket, self._prefix, marker, self._page_size)
        self._entries = page.entries
        self._next_marker = page.next_marker
        logger.debug(
            "Loaded bucket=%s prefix='%s' page=%d entries=%d more=%s",
            self._bucket,
            self._prefix,
            self.current_page,
            len(page.entries),
            self.has_next_page,
        )
        return self.entries

    def navigate(self, prefix: str) -> list[Entry]:
        """Open a folder at page 1. The filter is kept."""
        self._prefix = normalize_prefix(prefix)
        self.page_markers = [""]
        return self._load()

    def refresh(self) -> list[Entry]:
        return self._load()

    def next_page(self) -> bool:
        if self._next_marker is None:
            return False
        self.page_markers.append(self._next_marker)
        self._load()
        return True

    def previous_page(self) -> bool:
        if len(self.page_markers) <= 1:
            return False
        self.page_markers.pop()
        self._load()
        return True

    def set_page_size(self, page_size: int) -> list[Entry]:
        if page_size < 1:
            raise ValueError("Page size must be a positive number")
        self._page_size = page_size
        self.page_markers = [""]
        return self._load()

    def filter(self, term: str) -> list[Entry]:
        """Case-insensitive substring filter on names; an empty term clears it."""
        self._filter = term.strip().lower()
        return self.entries

    def breadcrumbs(self) -> list[tuple[str, str]]:
        """``(label, prefix)`` for the bucket root and each folder down to here."""
        crumbs = [(self._bucket, "")]
        prefix = ""
        for segment in self._prefix.rstrip(DELIMITER).split(DELIMITER):
            if not segment:
                continue
            prefix = f"{prefix}{segment}{DELIMITER}"
            crumbs.append((segment, prefix))
        return crumbs

    def parent_prefix(self) -> str:
        parent, _, _ = self._prefix.rstrip(DELIMITER).rpartition(DELIMITER)
        return parent + DELIMITER if parent else ""

    # --- Batch items ---

    def upload_items(self, paths: list[str | Path]) -> list[TransferItem]:
        items = []
        for path in map(Path, paths):
            if path.is_dir():
                items.append(
                    TransferItem(TransferKind.UPLOAD, path, self._prefix, is_folder=True)
                )
            else:
                items.append(TransferItem(TransferKind.UPLOAD, path, self._prefix + path.name))
        return items

    def download_items(self, entries: list[Entry], local_dir: str | Path) -> list[TransferItem]:
        local_dir = Path(local_dir)
        return [
            TransferItem(
                TransferKind.DOWNLOAD,
                entry.key,
                local_dir if entry.is_folder else local_dir / entry.name,
                expected_size=entry.size,
                is_folder=entry.is_folder,
                name=entry.name,
                local_root=local_dir,
            )
            for entry in entries
        ]

    def delete_items(self, entries: list[Entry]) -> list[TransferItem]:
        return [
            TransferItem(
                TransferKind.DELETE,
                entry.key,
                expected_size=entry.size,
                is_folder=entry.is_folder,
                name=entry.name,
            )
            for entry in entries
        ]

    def copy_items(self, entries: list[Entry], dest_prefix: str) -> list[TransferItem]:
        dest_prefix = normalize_prefix(dest_prefix)
        return [
            TransferItem(
                TransferKind.COPY,
                entry.key,
                dest_prefix if entry.is_folder else dest_prefix + entry.name,
                expected_size=entry.size,
                is_folder=entry.is_folder,
                name=entry.name,
            )
            for entry in entries
        ]

    # --- Bulk actions ---

    def _run(
        self,
        items: list[TransferItem],
        progress_callback: ProgressCallback | None,
        cancel_event: threading.Event | None,
        refresh: bool = True,
    ) -> BatchResult:
        result = self._coordinator.run_batch(
            items,
            concurrency=self._settings.concurrency,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )
        if refresh and result.succeeded:
            self._load()
        return result

    def upload(
        self,
        paths: list[str | Path],
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Upload local files and directories into the current folder."""
        return self._run(self.upload_items(paths), progress_callback, cancel_event)

    def download(
        self,
        entries: list[Entry],
        local_dir: str | Path,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        return self._run(
            self.download_items(entries, local_dir), progress_callback, cancel_event, refresh=False
        )

    def delete(
        self,
        entries: list[Entry],
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        return self._run(self.delete_items(entries), progress_callback, cancel_event)

    def copy(
        self,
        entries: list[Entry],
        dest_prefix: str,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Copy entries into *dest_prefix*; existing names get a ``(n)`` suffix."""
        return self._run(self.copy_items(entries, dest_prefix), progress_callback, cancel_event)

    def create_folder(self, name: str) -> str:
        key = self._ops.create_folder(self._prefix, name)
        self._load()
        return key
