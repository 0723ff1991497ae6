"""Single-item operations shared by bulk transfers and direct UI actions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from s3tree.constants import DELIMITER, DOWNLOAD_CHUNK_SIZE
from s3tree.core.errors import FolderOperationError, UnsafeLocalPathError
from s3tree.core.expander import RecursiveExpander, folder_prefix
from s3tree.core.name_resolver import NameResolver

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.operations")


def leaf_name(key: str) -> str:
    """Last path segment of a key, without a trailing delimiter."""
    return key.rstrip(DELIMITER).rsplit(DELIMITER, 1)[-1]


def local_parts(relative_key: str) -> list[str]:
    """Path segments of a relative key; empty and ``.`` segments are dropped.

    ``..`` is kept so the containment check in ``download_object`` sees it.
    """
    return [p for p in relative_key.split(DELIMITER) if p not in ("", ".")]


def validate_folder_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Folder name cannot be empty.")
    if DELIMITER in name:
        raise ValueError(f"Folder name cannot contain '{DELIMITER}'.")
    if name in (".", ".."):
        raise ValueError(f"'{name}' is not a valid folder name.")
    return name


class ItemOperations:
    """Upload, download, delete and copy of one object or folder in one bucket."""

    def __init__(
        self,
        client: S3Client,
        bucket: str,
        resolver: NameResolver | None = None,
        expander: RecursiveExpander | None = None,
    ) -> None:
        self._s3 = client
        self.bucket = bucket
        self.resolver = resolver or NameResolver(client, bucket)
        self.expander = expander or RecursiveExpander(client)

    # --- Upload ---

    def upload_file(self, local_path: str | Path, key: str, resolve: bool = True) -> tuple[str, int]:
        """Upload a local file. Returns (final key, bytes sent).

        The content length comes from the bytes actually read, not from an
        earlier stat(). A key ending in the delimiter writes a folder marker.
        """
        if key.endswith(DELIMITER):
            return self._s3.create_folder_marker(self.bucket, key), 0

        data = Path(local_path).read_bytes()
        if not resolve:
            self._s3.put_object(self.bucket, key, data, content_length=len(data))
        else:
            key = self.resolver.resolve(key, reserve=True)
            try:
                self._s3.put_object(self.bucket, key, data, content_length=len(data))
            finally:
                # once written the object itself blocks the name
                self.resolver.release(key)
        logger.debug("Uploaded '%s' -> '%s' (%d bytes)", local_path, key, len(data))
        return key, len(data)

    def create_folder(self, parent_prefix: str, name: str) -> str:
        """Create an empty folder ``parent_prefix + name + '/'``. Returns its key."""
        name = validate_folder_name(name)
        key = self._s3.create_folder_marker(self.bucket, parent_prefix + name + DELIMITER)
        logger.info("Created folder '%s'", key)
        return key

    # --- Download ---

    def download_object(self, key: str, local_path: str | Path, root: str | Path | None = None) -> int:
        """Stream an object to *local_path*, creating parent directories.

        Data lands in a temporary sibling first and is renamed into place, so a
        failed download never leaves a truncated file behind. With *root*, a
        path that resolves outside it raises UnsafeLocalPathError before any
        request is made. Returns bytes written.
        """
        local_path = Path(local_path)
        if root is not None and not local_path.resolve().is_relative_to(Path(root).resolve()):
            raise UnsafeLocalPathError(key, Path(root))
        local_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = local_path.with_name(f".{local_path.name}.s3tree-part")

        body = self._s3.get_object(self.bucket, key)
        written = 0
        try:
            with open(temp_path, "wb") as f:
                for chunk in body.iter_chunks(DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
                    written += len(chunk)
            temp_path.replace(local_path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise
        finally:
            body.close()
        logger.debug("Downloaded '%s' -> '%s' (%d bytes)", key, local_path, written)
        return written

    # --- Delete ---

    def delete_object(self, key: str) -> None:
        self._s3.delete_object(self.bucket, key)

    def delete_folder(self, prefix: str) -> list[str]:
        """Delete every key under *prefix*, its own marker included.

        Best effort: each key is attempted even after a failure. Raises
        FolderOperationError naming the keys that could not be deleted.
        """
        prefix = folder_prefix(prefix)
        keys = self.expander.list_keys(self.bucket, prefix)
        deleted: list[str] = []
        failed: list[str] = []
        for key in keys:
            try:
                self._s3.delete_object(self.bucket, key)
                deleted.append(key)
            except Exception:
                logger.warning("Failed to delete '%s'", key, exc_info=True)
                failed.append(key)
        logger.info("Deleted folder '%s': %d keys, %d failed", prefix, len(deleted), len(failed))
        if failed:
            raise FolderOperationError(prefix, failed)
        return deleted

    # --- Copy ---

    def copy_object(self, src_key: str, dst_key: str, resolve: bool = True) -> str:
        """Server-side copy that never overwrites. Returns the final key."""
        if not resolve:
            self._s3.copy_object(self.bucket, src_key, dst_key)
        else:
            dst_key = self.resolver.resolve(dst_key, reserve=True)
            try:
                self._s3.copy_object(self.bucket, src_key, dst_key)
            finally:
                self.resolver.release(dst_key)
        logger.debug("Copied '%s' -> '%s'", src_key, dst_key)
        return dst_key

    def resolve_folder_destination(self, src_prefix: str, dst_parent: str) -> str:
        """A fresh, unused folder root for copying *src_prefix* into *dst_parent*."""
        candidate = dst_parent + leaf_name(src_prefix) + DELIMITER
        return self.resolver.resolve(candidate, reserve=True)

    def copy_folder(self, src_prefix: str, dst_parent: str) -> str:
        """Copy a folder below *dst_parent*. Returns the new folder root.

        The root is resolved once; since it is freshly allocated the keys below
        it need no collision check.
        """
        src_prefix = folder_prefix(src_prefix)
        new_root = self.resolve_folder_destination(src_prefix, dst_parent)
        failed: list[str] = []
        for entry in self.expander.expand(self.bucket, src_prefix, include_markers=True):
            try:
                self._s3.copy_object(self.bucket, entry.key, new_root + entry.name)
            except Exception:
                logger.warning("Failed to copy '%s'", entry.key, exc_info=True)
                failed.append(entry.key)
        logger.info("Copied folder '%s' -> '%s' (%d failed)", src_prefix, new_root, len(failed))
        if failed:
            raise FolderOperationError(src_prefix, failed)
        return new_root
