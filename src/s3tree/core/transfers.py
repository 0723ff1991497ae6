"""Transfer coordinator: scans a batch, then fans it out to a fixed worker pool."""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from s3tree.constants import DEFAULT_CONCURRENCY, DEFAULT_SCAN_WORKERS, DELIMITER, MAX_NAME_PROBES
from s3tree.core.errors import ScanError, TransferCancelledError, translate_error
from s3tree.core.expander import RecursiveExpander, folder_prefix
from s3tree.core.name_resolver import NameResolver
from s3tree.core.operations import ItemOperations, leaf_name, local_parts
from s3tree.models.entries import (
    BatchResult,
    FailureRecord,
    ProgressState,
    TransferItem,
    TransferKind,
)

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.transfers")

ProgressCallback = Callable[[int, int], None]


class TransferCoordinator:
    """Runs bulk upload/download/delete/copy batches against one bucket.

    A batch runs in two phases. The scan phase expands folder items into
    file-level items and fixes the byte total; it only reads, and a folder
    that cannot be enumerated aborts the batch before anything is modified.
    The execute phase drains a queue with ``concurrency`` worker threads; a
    failing item is recorded and the workers move on.
    """

    def __init__(
        self,
        client: S3Client,
        bucket: str,
        scan_workers: int = DEFAULT_SCAN_WORKERS,
        max_probes: int = MAX_NAME_PROBES,
    ) -> None:
        self._s3 = client
        self._bucket = bucket
        self._scan_workers = max(1, scan_workers)
        self._max_probes = max_probes
        self._expander = RecursiveExpander(client)

    @property
    def bucket(self) -> str:
        return self._bucket

    def _operations(self) -> ItemOperations:
        # One resolver per batch: name reservations must not outlive it.
        resolver = NameResolver(self._s3, self._bucket, self._max_probes)
        return ItemOperations(self._s3, self._bucket, resolver, self._expander)

    def run_batch(
        self,
        items: list[TransferItem],
        concurrency: int = DEFAULT_CONCURRENCY,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Scan and execute *items*.

        Raises ScanError if any folder could not be enumerated and
        TransferCancelledError if cancelled during the scan. Per-item failures
        are returned in ``BatchResult.failures``.
        """
        if not items:
            return BatchResult()
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        cancel_event = cancel_event or threading.Event()
        ops = self._operations()

        work = self.scan(items, ops, cancel_event)
        progress = ProgressState(
            total_bytes=sum(w.expected_size for w in work),
            total_items=len(work),
        )
        result = BatchResult(progress=progress)
        if not work:
            return result

        logger.info(
            "Batch start bucket=%s items=%d expanded=%d bytes=%d workers=%d",
            self._bucket,
            len(items),
            len(work),
            progress.total_bytes,
            concurrency,
        )

        pending: queue.Queue[TransferItem] = queue.Queue(maxsize=len(work))
        for w in work:
            pending.put_nowait(w)
        lock = threading.Lock()

        def worker() -> None:
            while not cancel_event.is_set():
                try:
                    item = pending.get_nowait()
                except queue.Empty:
                    return
                try:
                    self._execute(item, ops)
                except Exception as e:
                    user_msg, detail = translate_error(e)
                    logger.warning("Transfer of '%s' failed: %s", item.name, detail)
                    with lock:
                        result.failures.append(FailureRecord(item.name, e, user_msg))
                    continue
                transferred, _ = progress.add(item.expected_size)
                with lock:
                    result.succeeded.append(item.name)
                if progress_callback is not None:
                    try:
                        progress_callback(transferred, progress.total_bytes)
                    except Exception:
                        logger.exception("Progress callback raised")

        threads = [
            threading.Thread(target=worker, name=f"s3tree-transfer-{i}", daemon=True)
            for i in range(min(concurrency, len(work)))
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        while True:
            try:
                result.skipped.append(pending.get_nowait().name)
            except queue.Empty:
                break
        # a cancel that lands after the last item changes nothing
        result.cancelled = bool(result.skipped)

        logger.info(
            "Batch done bucket=%s succeeded=%d failed=%d skipped=%d bytes=%d/%d",
            self._bucket,
            len(result.succeeded),
            len(result.failures),
            len(result.skipped),
            progress.transferred_bytes,
            progress.total_bytes,
        )
        return result

    # --- Scan phase ---

    def scan(
        self,
        items: list[TransferItem],
        ops: ItemOperations | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[TransferItem]:
        """Expand every item to file level, keeping the input order."""
        if not items:
            return []
        ops = ops or self._operations()
        cancel_event = cancel_event or threading.Event()
        expanded: list[list[TransferItem]] = [[] for _ in items]
        errors: list[tuple[str, Exception]] = []

        with ThreadPoolExecutor(
            max_workers=min(self._scan_workers, len(items)),
            thread_name_prefix="s3tree-scan",
        ) as pool:
            futures = {
                pool.submit(self._expand, item, ops, cancel_event): index
                for index, item in enumerate(items)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    expanded[index] = future.result()
                except TransferCancelledError:
                    continue
                except Exception as e:
                    logger.warning("Scan of '%s' failed: %s", items[index].name, e)
                    errors.append((items[index].name, e))

        if cancel_event.is_set():
            raise TransferCancelledError("Batch cancelled during scan")
        if errors:
            raise ScanError(errors)
        return [w for group in expanded for w in group]

    def _expand(
        self, item: TransferItem, ops: ItemOperations, cancel_event: threading.Event
    ) -> list[TransferItem]:
        if cancel_event.is_set():
            raise TransferCancelledError("Batch cancelled during scan")
        if not item.is_folder:
            if item.kind is TransferKind.UPLOAD and not item.expected_size:
                # an unreadable file fails in the execute phase, not here
                try:
                    return [replace(item, expected_size=Path(item.source).stat().st_size)]
                except OSError:
                    return [item]
            return [item]
        if item.kind is TransferKind.UPLOAD:
            return self._expand_local_folder(item, ops, cancel_event)
        if item.kind is TransferKind.DOWNLOAD:
            return self._expand_download(item)
        if item.kind is TransferKind.DELETE:
            return self._expand_delete(item)
        return self._expand_copy(item, ops)

    def _expand_local_folder(
        self, item: TransferItem, ops: ItemOperations, cancel_event: threading.Event
    ) -> list[TransferItem]:
        """Walk a local directory; the remote root name is resolved once, here."""
        root = Path(item.source)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")
        dest_parent = str(item.destination)
        remote_root = ops.resolver.resolve(dest_parent + root.name + DELIMITER, reserve=True)

        work: list[TransferItem] = []
        for dirpath, dirnames, filenames in os.walk(root):
            if cancel_event.is_set():
                raise TransferCancelledError("Batch cancelled during scan")
            dirnames.sort()
            rel_dir = Path(dirpath).relative_to(root).as_posix()
            key_dir = remote_root if rel_dir == "." else remote_root + rel_dir + DELIMITER
            work.append(
                TransferItem(
                    kind=TransferKind.UPLOAD,
                    source=dirpath,
                    destination=key_dir,
                    name=key_dir,
                    pre_resolved=True,
                )
            )
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                work.append(
                    TransferItem(
                        kind=TransferKind.UPLOAD,
                        source=path,
                        destination=key_dir + filename,
                        expected_size=path.stat().st_size,
                        name=key_dir + filename,
                        pre_resolved=True,
                    )
                )
        logger.debug("Scanned local folder '%s' -> %d items under '%s'", root, len(work), remote_root)
        return work

    def _expand_download(self, item: TransferItem) -> list[TransferItem]:
        prefix = folder_prefix(str(item.source))
        local_root = Path(item.destination) / leaf_name(prefix)
        return [
            TransferItem(
                kind=TransferKind.DOWNLOAD,
                source=entry.key,
                destination=local_root.joinpath(*local_parts(entry.name)),
                expected_size=entry.size,
                name=entry.key,
                local_root=local_root,
            )
            for entry in self._expander.expand(self._bucket, prefix)
        ]

    def _expand_delete(self, item: TransferItem) -> list[TransferItem]:
        prefix = folder_prefix(str(item.source))
        return [
            TransferItem(
                kind=TransferKind.DELETE,
                source=entry.key,
                expected_size=entry.size,
                name=entry.key,
            )
            for entry in self._expander.expand(self._bucket, prefix, include_markers=True)
        ]

    def _expand_copy(self, item: TransferItem, ops: ItemOperations) -> list[TransferItem]:
        prefix = folder_prefix(str(item.source))
        entries = self._expander.expand(self._bucket, prefix, include_markers=True)
        new_root = ops.resolve_folder_destination(prefix, str(item.destination))
        return [
            TransferItem(
                kind=TransferKind.COPY,
                source=entry.key,
                destination=new_root + entry.name,
                expected_size=entry.size,
                name=entry.key,
                pre_resolved=True,
            )
            for entry in entries
        ]

    # --- Execute phase ---

    def _execute(self, item: TransferItem, ops: ItemOperations) -> None:
        resolve = not item.pre_resolved
        if item.kind is TransferKind.UPLOAD:
            ops.upload_file(item.source, str(item.destination), resolve=resolve)
        elif item.kind is TransferKind.DOWNLOAD:
            ops.download_object(str(item.source), item.destination, root=item.local_root)
        elif item.kind is TransferKind.DELETE:
            ops.delete_object(str(item.source))
        elif item.kind is TransferKind.COPY:
            ops.copy_object(str(item.source), str(item.destination), resolve=resolve)
        else:
            raise ValueError(f"Unknown transfer kind: {item.kind}")
