# Copyright (c) 2025 Trae AI. All rights reserved.

import queue
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
from videoshelf.core.convention import INFO_SUFFIX
from videoshelf.services.metadata_cache import MetadataCache


class WatchEventType(Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class WatchEvent:
    type: WatchEventType
    path: str


class SidecarEventHandler(FileSystemEventHandler):
    """
    Filters raw file system events down to ``.info.json`` sidecars below the
    root and holds add/change events until the file stops changing.
    """

    def __init__(
        self,
        root: Path,
        emit: Callable[[WatchEvent], None],
        depth: int = 3,
        stability_seconds: float = 2.0,
    ):
        self.root = Path(root)
        self.emit = emit
        self.depth = depth
        self.stability_seconds = stability_seconds
        self._lock = threading.Lock()
        self._pending: Dict[str, WatchEventType] = {}
        self._timers: Dict[str, threading.Timer] = {}

    def accepts(self, path: str) -> bool:
        if not path.endswith(INFO_SUFFIX):
            return False
        try:
            rel = Path(path).relative_to(self.root)
        except ValueError:
            return False
        if any(part.startswith(".") for part in rel.parts):
            return False
        # Number of directories between the root and the file.
        return len(rel.parts) - 1 <= self.depth

    def on_created(self, event):
        if not event.is_directory:
            self._settle(WatchEventType.ADDED, str(event.src_path))

    def on_modified(self, event):
        if not event.is_directory:
            self._settle(WatchEventType.CHANGED, str(event.src_path))

    def on_deleted(self, event):
        if not event.is_directory:
            self._removed(str(event.src_path))

    def on_moved(self, event):
        if not event.is_directory:
            self._removed(str(event.src_path))
            self._settle(WatchEventType.ADDED, str(event.dest_path))

    def cancel_all(self):
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()

    def _settle(self, event_type: WatchEventType, path: str):
        if not self.accepts(path):
            return
        if self.stability_seconds <= 0:
            self.emit(WatchEvent(event_type, path))
            return

        with self._lock:
            previous = self._timers.pop(path, None)
            if previous:
                previous.cancel()
            # A file created and then written to is still an addition.
            if self._pending.get(path) != WatchEventType.ADDED:
                self._pending[path] = event_type
            timer = threading.Timer(self.stability_seconds, self._settled, args=(path,))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _settled(self, path: str):
        with self._lock:
            timer = self._timers.get(path)
            if timer is not threading.current_thread():
                return
            del self._timers[path]
            event_type = self._pending.pop(path, WatchEventType.CHANGED)
        self.emit(WatchEvent(event_type, path))

    def _removed(self, path: str):
        if not self.accepts(path):
            return
        with self._lock:
            timer = self._timers.pop(path, None)
            if timer:
                timer.cancel()
            self._pending.pop(path, None)
        self.emit(WatchEvent(WatchEventType.REMOVED, path))


class FileWatcher:
    """
    Watches at most one library root at a time and keeps the metadata cache
    in step with sidecar changes. Events are funnelled through a queue to a
    single consumer thread, the only place the watcher mutates the cache.

    The observer watches the whole tree recursively; ``depth`` only filters
    which events reach the cache, it does not limit the OS-level watches.
    """

    def __init__(
        self,
        cache: MetadataCache,
        depth: int = 3,
        stability_seconds: float = 2.0,
        enabled: bool = True,
        verbose: bool = False,
        observer_factory: Callable = Observer,
    ):
        self.cache = cache
        self.depth = depth
        self.stability_seconds = stability_seconds
        self.enabled = enabled
        self.verbose = verbose
        self.observer_factory = observer_factory
        self.logger = logging.getLogger(__name__)

        self.events: "queue.Queue[Optional[WatchEvent]]" = queue.Queue()
        self.observer = None
        self.handler: Optional[SidecarEventHandler] = None
        self.watched_dir: Optional[Path] = None
        self.consumer_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, cache: MetadataCache) -> "FileWatcher":
        return cls(
            cache,
            depth=config.watch_depth,
            stability_seconds=config.watch_stability_seconds,
            enabled=config.watch_enabled,
            verbose=config.verbose,
        )

    @property
    def is_watching(self) -> bool:
        return self.watched_dir is not None

    def watch(self, directory) -> bool:
        """
        Starts watching ``directory``, closing the previous watch first.
        Returns False when the watch could not be started; scans go on
        without live invalidation in that case.
        """
        if not self.enabled:
            return False

        directory = Path(directory)
        with self._lock:
            if self.watched_dir == directory:
                return True
            self._stop_observer()
            self._ensure_consumer()

            handler = SidecarEventHandler(
                directory, self.events.put, self.depth, self.stability_seconds
            )
            observer = self.observer_factory()
            try:
                observer.schedule(handler, str(directory), recursive=True)
                observer.start()
            except Exception as e:
                self.logger.warning(f"[WATCHER] Could not watch {directory}: {e}")
                return False

            self.logger.info(f"[WATCHER] Starting watch on {directory}")
            self.observer = observer
            self.handler = handler
            self.watched_dir = directory
            return True

    def stop(self):
        """Closes the current watch, if any."""
        with self._lock:
            self._stop_observer()

    def shutdown(self):
        """Stops watching and ends the consumer thread."""
        self.stop()
        if self.consumer_thread and self.consumer_thread.is_alive():
            self.events.put(None)
            self.consumer_thread.join()
        self.consumer_thread = None

    def apply(self, event: WatchEvent):
        if self.verbose:
            self.logger.debug(f"[WATCHER] {event.type.value}: {Path(event.path).name}")
        if event.type == WatchEventType.REMOVED:
            self.cache.remove(event.path)
        else:
            # Re-validates against the new mtime and refreshes the entry.
            self.cache.get(event.path)

    def _stop_observer(self):
        if self.observer is None:
            return
        self.logger.info(f"[WATCHER] Stopping watch on {self.watched_dir}")
        if self.handler:
            self.handler.cancel_all()
        try:
            self.observer.stop()
            self.observer.join()
        except Exception as e:
            self.logger.warning(f"[WATCHER] Error while stopping watch: {e}")
        self.observer = None
        self.handler = None
        self.watched_dir = None

    def _ensure_consumer(self):
        if self.consumer_thread and self.consumer_thread.is_alive():
            return
        self.consumer_thread = threading.Thread(target=self._consume, daemon=True)
        self.consumer_thread.start()

    def _consume(self):
        while True:
            event = self.events.get()
            if event is None:
                break
            try:
                self.apply(event)
            except Exception as e:
                self.logger.error(f"[WATCHER] Error handling {event}: {e}")
