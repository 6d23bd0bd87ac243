import tempfile
import types
import unittest
from pathlib import Path
from unittest.mock import patch

from watchfiles import Change

from traceview.watcher import LogWatcher


class LogWatcherTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.path = Path(tmpdir.name) / "trace.log"
        self.path.write_text("x=1\n", encoding="utf-8")

    def test_should_reload_only_for_watched_file(self) -> None:
        other = self.path.parent / "other.log"
        self.assertTrue(LogWatcher.should_reload({(Change.modified, str(self.path))}, self.path))
        self.assertTrue(LogWatcher.should_reload({(Change.added, str(self.path))}, self.path))
        self.assertFalse(LogWatcher.should_reload({(Change.modified, str(other))}, self.path))
        self.assertFalse(LogWatcher.should_reload(set(), self.path))

    async def test_start_without_file_is_a_no_op(self) -> None:
        watcher = LogWatcher()
        await watcher.start(types.SimpleNamespace(path=None))
        self.assertFalse(watcher.is_running)
        await watcher.stop()
        self.assertFalse(watcher.is_running)

    async def test_change_to_watched_file_reloads_store(self) -> None:
        reloads: list[str] = []

        def reload() -> types.SimpleNamespace:
            reloads.append("reload")
            return types.SimpleNamespace(status="Loaded 2 lines")

        other = str(self.path.parent / "other.log")

        async def fake_awatch(*paths, stop_event=None):
            yield {(Change.modified, other)}
            yield {(Change.modified, str(self.path))}

        watcher = LogWatcher()
        watcher._running = True
        with patch("traceview.watcher.awatch", fake_awatch):
            await watcher._watch_loop(types.SimpleNamespace(path=str(self.path), reload=reload), self.path)

        self.assertEqual(reloads, ["reload"])
        self.assertFalse(watcher.is_running)

    async def test_start_and_stop(self) -> None:
        reloads: list[bool] = []
        store = types.SimpleNamespace(path=str(self.path), reload=lambda: reloads.append(True))
        watcher = LogWatcher()
        await watcher.start(store)
        self.assertTrue(watcher.is_running)
        await watcher.stop()
        self.assertFalse(watcher.is_running)


if __name__ == "__main__":
    unittest.main()
