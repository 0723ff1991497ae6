"""Folder projection: turn a flat key listing into one level of folders and files."""

from __future__ import annotations

from collections.abc import Iterable

from s3tree.constants import DELIMITER
from s3tree.models.entries import Entry, ObjectSummary


def sort_key(entry: Entry) -> tuple[int, str, str]:
    """Folders first (0), then files (1); ordinal by name, key as tie-breaker."""
    return (0 if entry.is_folder else 1, entry.name, entry.key)


def sort_entries(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=sort_key)


def _strip(key: str, prefix: str) -> str:
    return key[len(prefix) :] if prefix and key.startswith(prefix) else key


def is_placeholder(obj: ObjectSummary) -> bool:
    """A zero-byte object whose key ends in the delimiter marks a folder."""
    return obj.key.endswith(DELIMITER) and obj.size == 0


def project(
    prefix: str,
    common_prefixes: Iterable[str],
    contents: Iterable[ObjectSummary],
    drop_placeholders: bool = False,
) -> list[Entry]:
    """Merge common prefixes (folders) and contents (files) under *prefix*.

    The object equal to *prefix* is the current folder's own marker and is never
    a child. With ``drop_placeholders`` (recursive listings without a
    delimiter) zero-byte ``.../`` markers are left out as well.
    """
    seen: set[str] = set()
    entries: list[Entry] = []

    for cp in common_prefixes:
        if cp in seen:
            continue
        seen.add(cp)
        # "dir//" under "dir/" has no segment left to show
        name = _strip(cp, prefix).rstrip(DELIMITER) or DELIMITER
        entries.append(Entry(name=name, key=cp, is_folder=True))

    for obj in contents:
        if obj.key == prefix or obj.key in seen:
            continue
        if drop_placeholders and is_placeholder(obj):
            continue
        seen.add(obj.key)
        entries.append(
            Entry(
                name=_strip(obj.key, prefix),
                key=obj.key,
                is_folder=False,
                size=obj.size,
                last_modified=obj.last_modified,
            )
        )

    return sort_entries(entries)


def fold(prefix: str, contents: Iterable[ObjectSummary]) -> list[Entry]:
    """Immediate children of *prefix* derived from a delimiter-less listing.

    Deeper keys and folder markers collapse into one folder entry per first
    path segment, matching what a delimiter listing returns as common prefixes.
    """
    folders: list[str] = []
    files: list[ObjectSummary] = []
    for obj in contents:
        if obj.key == prefix or not obj.key.startswith(prefix):
            continue
        rest = obj.key[len(prefix) :]
        head, sep, _tail = rest.partition(DELIMITER)
        if sep:
            folders.append(prefix + head + DELIMITER)
        else:
            files.append(obj)
    return project(prefix, folders, files)
