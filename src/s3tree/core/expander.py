"""Expand a folder entry into the complete set of keys beneath it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from s3tree.constants import DELIMITER
from s3tree.core.projector import is_placeholder
from s3tree.models.entries import Entry

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.expander")


def folder_prefix(key: str) -> str:
    return key if key.endswith(DELIMITER) else key + DELIMITER


class RecursiveExpander:
    """Delimiter-less listing of a folder, always paginated to exhaustion."""

    def __init__(self, client: S3Client) -> None:
        self._s3 = client

    def expand(self, bucket: str, folder: Entry | str, include_markers: bool = False) -> list[Entry]:
        """Entries under *folder*, sorted by key.

        Names are relative to the folder. Files only, unless *include_markers*;
        then zero-byte ``.../`` markers (the folder's own one included) come
        back as folder entries.
        """
        prefix = folder_prefix(folder.key if isinstance(folder, Entry) else folder)
        listing = self._s3.list_all(bucket, prefix, delimiter=None)

        entries: list[Entry] = []
        for obj in listing.contents:
            marker = is_placeholder(obj)
            if marker and not include_markers:
                continue
            entries.append(
                Entry(
                    name=obj.key[len(prefix) :],
                    key=obj.key,
                    is_folder=marker,
                    size=obj.size,
                    last_modified=obj.last_modified,
                )
            )
        entries.sort(key=lambda e: e.key)
        logger.debug(
            "expand bucket=%s prefix='%s' -> %d entries (markers=%s)",
            bucket,
            prefix,
            len(entries),
            include_markers,
        )
        return entries

    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        """Every raw key under *prefix*, markers included."""
        return [e.key for e in self.expand(bucket, prefix, include_markers=True)]

    def total_size(self, bucket: str, folder: Entry | str) -> int:
        return sum(e.size for e in self.expand(bucket, folder))
