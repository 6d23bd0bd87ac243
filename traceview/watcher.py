"""Log file watcher using watchfiles.

Reloads the viewer's log (including LiteLLM reassembly) whenever the
watched file is modified, so an open page picks up new lines on refresh.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchfiles import Change, awatch

logger = logging.getLogger("traceview.watcher")


class LogWatcher:
    """Background watcher that reloads a ``LogStore`` on change."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

    async def start(self, store) -> None:
        """Start watching the store's log file in a background task."""
        if self._running:
            logger.warning("Log watcher already running")
            return
        if not store.path or not Path(store.path).is_file():
            logger.warning("No log file to watch")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(store, Path(store.path)))
        logger.info("Log watcher started for %s", store.path)

    async def stop(self) -> None:
        """Stop the watcher."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Log watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, store, path: Path) -> None:
        try:
            async for changes in awatch(path, stop_event=self._stop_event):
                if not self._running:
                    break
                if self.should_reload(changes, path):
                    state = await asyncio.to_thread(store.reload)
                    logger.info("Reloaded %s: %s", path, state.status)
        except asyncio.CancelledError:
            logger.info("Log watcher task cancelled")
        except OSError as exc:
            logger.error("Log watcher error: %s", exc)
        finally:
            self._running = False

    @staticmethod
    def should_reload(changes: set[tuple[Change, str]], path: Path) -> bool:
        """True when any change touches ``path`` (added, modified or deleted)."""
        target = path.resolve()
        for change_type, changed in changes:
            if Path(changed).resolve() != target:
                continue
            if change_type in (Change.added, Change.modified, Change.deleted):
                return True
        return False


# Singleton instance
log_watcher = LogWatcher()
