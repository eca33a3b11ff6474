"""
Watches workspace roots for saved source files and forwards them to the monitor.

Stands in for the editor's "document saved" event: a write to a file with a
watched extension counts as a save. Bursts (editors often write a file several
times per save) are collapsed by a short debounce.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

log = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".vue", ".js", ".ts", ".jsx", ".tsx")
IGNORED_DIRS = ("node_modules", ".git", "dist", ".vite")


class SaveEventHandler(FileSystemEventHandler):
    def __init__(
        self,
        on_saved: Callable[[str], None],
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        debounce_ms: int = 300,
    ) -> None:
        super().__init__()
        self._on_saved = on_saved
        self._extensions = {e.lower() if e.startswith(".") else "." + e.lower() for e in extensions}
        self._debounce_s = debounce_ms / 1000.0
        self._last_emit = 0.0
        self._lock = threading.Lock()

    def is_watched(self, path: str) -> bool:
        parts = path.replace("\\", "/").split("/")
        if any(d in parts for d in IGNORED_DIRS):
            return False
        return os.path.splitext(path)[1].lower() in self._extensions

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # atomic saves write a temp file and rename it over the target
        self._handle(event, getattr(event, "dest_path", "") or event.src_path)

    def _handle(self, event: FileSystemEvent, path) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(path)
        if not self.is_watched(path):
            return
        now = time.monotonic()
        with self._lock:
            if now - self._last_emit < self._debounce_s:
                return
            self._last_emit = now
        self._on_saved(path)


class SaveWatcher:
    """Owns a watchdog Observer over the workspace roots."""

    def __init__(
        self,
        roots: Iterable[str],
        on_saved: Callable[[str], None],
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self._roots = [r for r in roots if r]
        self._handler = SaveEventHandler(on_saved, extensions)
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        watched = []
        for root in self._roots:
            if os.path.isdir(root):
                observer.schedule(self._handler, root, recursive=True)
                watched.append(root)
            else:
                log.warning(f"Workspace root not found, not watching: {root}")
        observer.daemon = True
        observer.start()
        self._observer = observer
        if watched:
            log.info(f"Watching for saves in: {', '.join(watched)}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2.0)
        self._observer = None
