"""Tests for the Qt batch runner."""

from PyQt6.QtCore import QThreadPool
from conftest import BUCKET, all_keys

from s3tree.core.batch_runner import BatchRunner
from s3tree.core.transfers import TransferCoordinator
from s3tree.models.entries import TransferItem, TransferKind


def _upload(path):
    return TransferItem(TransferKind.UPLOAD, path, path.name)


class TestBatchRunner:
    def test_finished_carries_result(self, s3_env, tmp_path, qtbot):
        client, raw = s3_env
        paths = []
        for name, data in (("a.txt", b"aaa"), ("b.txt", b"bb")):
            path = tmp_path / name
            path.write_bytes(data)
            paths.append(path)

        runner = BatchRunner(TransferCoordinator(client, BUCKET), [_upload(p) for p in paths])
        signals = runner.signals
        progress: list[tuple[int, int]] = []
        signals.progress.connect(lambda done, total: progress.append((done, total)))

        with qtbot.waitSignal(signals.finished, timeout=10000) as blocker:
            QThreadPool.globalInstance().start(runner)

        result = blocker.args[0]
        assert result.ok
        assert sorted(result.succeeded) == ["a.txt", "b.txt"]
        assert all_keys(raw) == ["a.txt", "b.txt"]
        qtbot.waitUntil(lambda: len(progress) == 2, timeout=5000)
        assert max(done for done, _ in progress) == 5
        assert all(total == 5 for _, total in progress)

    def test_scan_error_emits_failed(self, s3_env, tmp_path, qtbot):
        client, raw = s3_env
        runner = BatchRunner(
            TransferCoordinator(client, BUCKET), [_upload(tmp_path / "missing.txt")]
        )
        signals = runner.signals

        with qtbot.waitSignal(signals.failed, timeout=10000) as blocker:
            QThreadPool.globalInstance().start(runner)

        user_msg, detail = blocker.args
        assert "missing.txt" in user_msg
        assert "ScanError" in detail
        assert all_keys(raw) == []

    def test_cancel_before_run(self, s3_env, tmp_path, qtbot):
        client, _ = s3_env
        path = tmp_path / "a.txt"
        path.write_bytes(b"a")
        runner = BatchRunner(TransferCoordinator(client, BUCKET), [_upload(path)])
        signals = runner.signals
        runner.cancel()
        assert runner.is_cancelled

        with qtbot.waitSignal(signals.failed, timeout=10000) as blocker:
            QThreadPool.globalInstance().start(runner)

        assert "cancelled" in blocker.args[0].lower()
