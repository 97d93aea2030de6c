"""Debounced watcher for a Kindle clippings file with an asyncio queue bridge."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import threading
from typing import Awaitable, Callable

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer


LOGGER = logging.getLogger(__name__)

CLIPPINGS_FILENAME = "My Clippings.txt"


class DebouncedClippingsHandler(PatternMatchingEventHandler):
    """Emits a clippings path once the file has been quiet for ``debounce_seconds``.

    A Kindle rewrites the whole file on every new highlight and the host
    system reports several events per copy, so bursts collapse into one.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[Path],
        debounce_seconds: float = 2.0,
        filename: str = CLIPPINGS_FILENAME,
    ) -> None:
        super().__init__(
            patterns=[filename],
            ignore_directories=True,
            case_sensitive=False,
        )
        self._loop = loop
        self._queue = queue
        self._filename = filename
        self._debounce_seconds = debounce_seconds
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _emit_path(self, raw_path: str) -> None:
        with self._lock:
            self._timers.pop(raw_path, None)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, Path(raw_path))

    def _schedule(self, raw_path: str) -> None:
        with self._lock:
            existing = self._timers.pop(raw_path, None)
            if existing is not None:
                existing.cancel()

            timer = threading.Timer(self._debounce_seconds, self._emit_path, args=(raw_path,))
            timer.daemon = True
            self._timers[raw_path] = timer
            timer.start()

    def on_created(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        self._schedule(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        self._schedule(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:  # type: ignore[override]
        destination = str(getattr(event, "dest_path", "") or "")
        if destination and Path(destination).name.lower() == self._filename.lower():
            self._schedule(destination)

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class ClippingsFileWatcher:
    def __init__(
        self,
        watch_dir: str | Path,
        callback: Callable[[Path], Awaitable[None]],
        debounce_seconds: float = 2.0,
        *,
        recursive: bool = False,
    ) -> None:
        self._watch_dir = Path(watch_dir)
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._recursive = recursive
        self._queue: asyncio.Queue[Path] | None = None
        self._handler: DebouncedClippingsHandler | None = None
        self._observer: Observer | None = None
        self._consumer_task: asyncio.Task[None] | None = None

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            path = await self._queue.get()
            try:
                await self._callback(path)
            except Exception:  # pragma: no cover
                LOGGER.exception("Clippings sync failed for %s", path)
            finally:
                self._queue.task_done()

    async def start(self) -> None:
        if self._observer is not None:
            return
        if not self._watch_dir.exists() or not self._watch_dir.is_dir():
            raise ValueError(f"Watch directory does not exist or is not a directory: {self._watch_dir}")

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handler = DebouncedClippingsHandler(
            loop=loop,
            queue=self._queue,
            debounce_seconds=self._debounce_seconds,
        )

        observer = Observer()
        observer.schedule(self._handler, str(self._watch_dir), recursive=self._recursive)
        observer.start()
        self._observer = observer
        self._consumer_task = asyncio.create_task(self._consume())

    def stop(self) -> None:
        observer = self._observer
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._observer = None

        if self._handler is not None:
            self._handler.close()
            self._handler = None

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            self._consumer_task = None
