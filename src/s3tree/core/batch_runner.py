"""Runs a transfer batch on a QThreadPool thread and reports through Qt signals."""

from __future__ import annotations

import logging
import threading
import traceback
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, QRunnable, pyqtSignal

from s3tree.constants import DEFAULT_CONCURRENCY
from s3tree.core.errors import translate_error

if TYPE_CHECKING:
    from s3tree.core.transfers import TransferCoordinator
    from s3tree.models.entries import TransferItem

logger = logging.getLogger("s3tree.batch_runner")


class BatchSignals(QObject):
    progress = pyqtSignal("qint64", "qint64")  # bytes_done, total
    finished = pyqtSignal(object)  # BatchResult
    failed = pyqtSignal(str, str)  # user_msg, detail


class BatchRunner(QRunnable):
    """Runs ``TransferCoordinator.run_batch`` off the UI thread.

    ``finished`` carries the BatchResult, per-item failures included.
    ``failed`` is only emitted when the batch as a whole could not run (scan
    error, cancellation during the scan).
    """

    def __init__(
        self,
        coordinator: TransferCoordinator,
        items: list[TransferItem],
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self.signals = BatchSignals()
        self._coordinator = coordinator
        self._items = list(items)
        self._concurrency = concurrency
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self) -> None:
        try:
            result = self._coordinator.run_batch(
                self._items,
                concurrency=self._concurrency,
                progress_callback=self.signals.progress.emit,
                cancel_event=self._cancel,
            )
        except Exception as e:
            user_msg, _ = translate_error(e)
            logger.error("Batch of %d items failed: %s", len(self._items), e)
            self.signals.failed.emit(user_msg, traceback.format_exc())
            return
        self.signals.finished.emit(result)
