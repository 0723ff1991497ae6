"""Paged listing of one folder level, with two interchangeable strategies."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from s3tree.constants import (
    DELIMITER,
    LISTING_STRATEGY_NATIVE,
    LISTING_STRATEGY_SLICE,
    PAGE_MARKER_PREFIX,
)
from s3tree.core.projector import project
from s3tree.models.entries import Entry, ListPage

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.pager")

_MARKER_RE = re.compile(rf"^{PAGE_MARKER_PREFIX}(\d+)$")


def format_page_marker(page: int) -> str:
    return f"{PAGE_MARKER_PREFIX}{page}"


def parse_page_marker(marker: str | None) -> int:
    """Page number addressed by a ``page_<n>`` marker; empty means page 1."""
    if not marker:
        return 1
    match = _MARKER_RE.match(marker)
    if not match or int(match.group(1)) < 1:
        raise ValueError(f"Invalid page marker: {marker!r}")
    return int(match.group(1))


class Pager(ABC):
    """Fetches one page of the immediate children of a prefix."""

    def __init__(self, client: S3Client) -> None:
        self._s3 = client

    @abstractmethod
    def fetch_page(
        self, bucket: str, prefix: str, marker: str | None, page_size: int
    ) -> ListPage: ...

    def list_children(self, bucket: str, prefix: str) -> list[Entry]:
        """Every immediate child of *prefix*, folders first."""
        listing = self._s3.list_all(bucket, prefix, DELIMITER)
        entries = project(prefix, listing.common_prefixes, listing.contents)
        logger.debug(
            "list_children bucket=%s prefix='%s' -> %d entries", bucket, prefix, len(entries)
        )
        return entries

    def iter_pages(self, bucket: str, prefix: str, page_size: int):
        """Yield pages in marker order until the listing is exhausted."""
        marker = None
        while True:
            page = self.fetch_page(bucket, prefix, marker, page_size)
            yield page
            if page.next_marker is None:
                return
            marker = page.next_marker


class NativePager(Pager):
    """Uses the store's continuation token as the page marker.

    Each page is sorted on its own; ordering across pages follows the store.
    """

    def fetch_page(
        self, bucket: str, prefix: str, marker: str | None, page_size: int
    ) -> ListPage:
        if page_size <= 0:
            return ListPage(entries=self.list_children(bucket, prefix))
        raw = self._s3.list_page(
            bucket,
            prefix,
            DELIMITER,
            continuation_token=marker or None,
            max_keys=page_size,
        )
        entries = project(prefix, raw.common_prefixes, raw.contents)
        return ListPage(entries=entries, next_marker=raw.next_token)


class SlicingPager(Pager):
    """Rebuilds the complete sorted listing and slices ``page_<n>`` windows from it.

    Works against stores whose continuation tokens are unstable, at the cost of
    a full enumeration per page. The sort is total, so slices of repeated
    enumerations line up as long as the remote state does not change.
    """

    def fetch_page(
        self, bucket: str, prefix: str, marker: str | None, page_size: int
    ) -> ListPage:
        page = parse_page_marker(marker)
        entries = self.list_children(bucket, prefix)
        if page_size <= 0:
            return ListPage(entries=entries)

        start = (page - 1) * page_size
        if start >= len(entries):
            return ListPage()
        end = min(start + page_size, len(entries))
        next_marker = format_page_marker(page + 1) if end < len(entries) else None
        return ListPage(entries=entries[start:end], next_marker=next_marker)


_PAGERS: dict[str, type[Pager]] = {
    LISTING_STRATEGY_NATIVE: NativePager,
    LISTING_STRATEGY_SLICE: SlicingPager,
}


def make_pager(strategy: str, client: S3Client) -> Pager:
    try:
        return _PAGERS[strategy](client)
    except KeyError:
        raise ValueError(f"Unknown listing strategy: {strategy!r}") from None
