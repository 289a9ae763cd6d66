# Copyright (c) 2025 Trae AI. All rights reserved.

import os
import json
import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Optional, Union
from pydantic import ValidationError
from videoshelf.core.models import CacheEntry, MinifiedMetadata
from videoshelf.core.scheduling import DebouncedTask

PathLike = Union[str, Path]


class MetadataCache:
    """
    mtime-validated LRU cache of minified sidecar metadata, persisted as a
    single JSON document. ``get`` never raises: an unreadable or malformed
    sidecar yields an empty record.
    """

    def __init__(
        self,
        cache_file: Optional[PathLike] = None,
        max_entries: int = 15000,
        save_delay: float = 5.0,
        verbose: bool = False,
    ):
        self.cache_file = Path(cache_file) if cache_file else None
        self.max_entries = max_entries
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._dirty = False
        self._save_task = DebouncedTask(self.save_to_disk, save_delay)

        self.load_from_disk()

    @classmethod
    def from_config(cls, config) -> "MetadataCache":
        return cls(
            cache_file=config.cache_file_path,
            max_entries=config.cache_max_entries,
            save_delay=config.cache_save_delay_seconds,
            verbose=config.verbose,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: PathLike) -> bool:
        with self._lock:
            return str(path) in self._entries

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load_from_disk(self):
        if not self.cache_file or not self.cache_file.exists():
            return

        self.logger.info(f"Loading metadata cache from {self.cache_file}...")
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                dump = json.load(f)
            if not isinstance(dump, dict):
                raise ValueError("cache file is not a JSON object")
            entries = [(str(key), CacheEntry.model_validate(value)) for key, value in dump.items()]
        except (OSError, ValueError, ValidationError) as e:
            self.logger.warning(f"Failed to load cache, starting fresh: {e}")
            try:
                self.cache_file.unlink()
            except OSError:
                pass
            return

        with self._lock:
            self._entries.clear()
            # Keep only the most recent entries when the file outgrew the bound.
            for key, entry in entries[-self.max_entries:]:
                self._entries[key] = entry
        self.logger.info(f"Cache loaded ({len(self._entries)} entries)")

    def get(self, path: PathLike) -> MinifiedMetadata:
        key = str(path)
        try:
            mtime = os.stat(key).st_mtime_ns
        except OSError:
            return MinifiedMetadata()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.mtime == mtime:
                self._entries.move_to_end(key)
                return entry.data

        try:
            data = MinifiedMetadata.from_raw(self._read_json(key))
        except (OSError, ValueError, RecursionError) as e:
            if self.verbose:
                self.logger.debug(f"[CACHE] Unreadable sidecar {key}: {e}")
            return MinifiedMetadata()

        with self._lock:
            self._entries[key] = CacheEntry(mtime=mtime, data=data)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            self._mark_dirty()
        return data

    def remove(self, path: PathLike) -> bool:
        key = str(path)
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._mark_dirty()
        if self.verbose:
            self.logger.debug(f"[CACHE] Evicted {Path(key).name}")
        return True

    def clear_by_prefix(self, prefix: PathLike) -> int:
        """
        Drops every entry located under ``prefix``. Returns the number removed.
        """
        normalized_prefix = os.path.normpath(str(prefix))
        with self._lock:
            doomed = [
                key for key in self._entries
                if os.path.normpath(key).startswith(normalized_prefix)
            ]
            for key in doomed:
                del self._entries[key]
            if doomed:
                self._mark_dirty()

        if doomed:
            self.logger.info(f"[CACHE] Cleared {len(doomed)} entries under {prefix}")
        return len(doomed)

    def save_to_disk(self):
        if not self.cache_file:
            return

        with self._save_lock:
            with self._lock:
                snapshot: Dict[str, Any] = {
                    key: entry.model_dump(mode="json", exclude_none=True)
                    for key, entry in self._entries.items()
                }
                self._dirty = False

            try:
                self.cache_file.parent.mkdir(parents=True, exist_ok=True)
                tmp_file = self.cache_file.with_name(self.cache_file.name + ".tmp")
                with open(tmp_file, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, ensure_ascii=False)
                os.replace(tmp_file, self.cache_file)
                if self.verbose:
                    self.logger.debug(f"[CACHE] Saved {len(snapshot)} entries.")
            except (OSError, TypeError, ValueError) as e:
                self._dirty = True
                self.logger.error(f"Error saving cache: {e}")

    def flush(self):
        """
        Writes pending changes now instead of waiting for the debounced save.
        """
        self._save_task.cancel()
        if self._dirty:
            self.save_to_disk()

    def close(self):
        self.flush()

    def _mark_dirty(self):
        self._dirty = True
        self._save_task.schedule()

    def _read_json(self, path: str) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
