
import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

from catalog_service.errors import CatalogError

logger = logging.getLogger("file_watcher")

Signature = Optional[Tuple[int, int, int]]


def file_signature(path: Path) -> Signature:
    try:
        st = os.stat(path)
    except OSError:
        return None
    # inode changes on every rename-into-place, even within one mtime tick
    return st.st_ino, st.st_mtime_ns, st.st_size


class FileWatcher:
    """Polls a file and calls `on_change` when its inode, mtime or size changes."""

    def __init__(self, path, on_change: Callable[[], Awaitable[object]], interval_ms: int = 500):
        self.path = Path(path)
        self.interval = interval_ms / 1000.0
        self._on_change = on_change
        self._last: Signature = file_signature(self.path)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._last = file_signature(self.path)
        self._task = asyncio.create_task(self._run())
        self._task.add_done_callback(self._on_stopped)
        logger.info(f"Watching {self.path} every {int(self.interval * 1000)}ms")

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def _on_stopped(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Watcher for {self.path} stopped unexpectedly: {exc!r}")

    async def check(self) -> bool:
        """One poll. Returns True if a change was seen and reported."""
        current = file_signature(self.path)
        if current == self._last:
            return False
        self._last = current
        if current is None:
            logger.warning(f"{self.path} disappeared, keeping cached catalog")
            return False
        logger.info(f"{self.path} changed, reloading")
        try:
            await self._on_change()
        except CatalogError as e:
            logger.error(f"Reload after file change failed: {e}")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()
