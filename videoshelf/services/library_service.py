# Copyright (c) 2025 Trae AI. All rights reserved.

import logging
from typing import List, Optional
from videoshelf.core.config import Config
from videoshelf.core.models import Playlist, PlaylistDetails, VideoItem
from videoshelf.core.searcher import Searcher
from videoshelf.services.indexer_service import Indexer
from videoshelf.services.metadata_cache import MetadataCache
from videoshelf.services.watch_service import FileWatcher


class LibraryService:
    """
    Wires the metadata cache, watcher, indexer and searcher together.
    One instance per process is the normal case, but nothing is global.
    """

    def __init__(
        self,
        config: Config,
        cache: Optional[MetadataCache] = None,
        watcher: Optional[FileWatcher] = None,
        indexer: Optional[Indexer] = None,
        searcher: Optional[Searcher] = None,
    ):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.cache = cache or MetadataCache.from_config(config)
        self.watcher = watcher or FileWatcher.from_config(config, self.cache)
        self.indexer = indexer or Indexer.from_config(config, self.cache, self.watcher)
        self.searcher = searcher or Searcher()
        self._closed = False

    def scan_playlists(self, directory) -> List[Playlist]:
        return self.indexer.scan_playlists(directory)

    def scan_playlist_videos(self, directory, playlist_id: str) -> Optional[PlaylistDetails]:
        return self.indexer.scan_playlist_videos(directory, playlist_id)

    def scan_all_videos(self, directory) -> List[VideoItem]:
        return self.indexer.scan_all_videos(directory)

    def search(self, directory, query: str) -> List[VideoItem]:
        return self.searcher.search(self.scan_all_videos(directory), query)

    def clear_cache(self, prefix) -> int:
        removed = self.cache.clear_by_prefix(prefix)
        self.cache.flush()
        return removed

    def shutdown(self):
        """Stops the watcher and writes the cache; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.logger.info("Shutting down library service...")
        self.watcher.shutdown()
        self.cache.close()
        self.logger.info("State saved.")
