# Copyright (c) 2025 Trae AI. All rights reserved.

import os
import stat
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Collection, List, Optional, Set, Tuple, TypeVar
from videoshelf.core.convention import (
    INFO_SUFFIX,
    Convention,
    extract_bracket_id,
    media_basename,
)
from videoshelf.core.models import MinifiedMetadata, Playlist, PlaylistDetails, VideoItem
from videoshelf.core.perf import PerformanceTimer
from videoshelf.services.metadata_cache import MetadataCache
from videoshelf.services.watch_service import FileWatcher

T = TypeVar("T")


class DirectoryNotFound(Exception):
    def __init__(self, path):
        super().__init__(f"Directory not found: {path}")
        self.path = path


class ScanGate:
    """
    Counting semaphore in front of every file system call a scan makes,
    so huge trees cannot exhaust file descriptors.
    """

    def __init__(self, limit: int = 50):
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)

    def run(self, func: Callable[..., T], *args) -> T:
        with self._semaphore:
            return func(*args)

    def stat(self, path: Path) -> os.stat_result:
        return self.run(os.stat, path)

    def listdir(self, path: Path) -> List[str]:
        return self.run(os.listdir, path)

    def scandir(self, path: Path) -> List[Tuple[str, bool]]:
        """(name, is_dir) pairs; symlinks are followed."""
        def _scan():
            with os.scandir(path) as it:
                return [(entry.name, entry.is_dir()) for entry in it]
        return self.run(_scan)

    def read_text(self, path: Path) -> str:
        return self.run(Path(path).read_text, "utf-8")


class Indexer:
    """
    Builds playlists and video listings from a library tree laid out by a
    YouTube downloader. Metadata is read through the shared cache; the
    watcher is re-targeted at whichever root was scanned last.
    """

    def __init__(
        self,
        cache: MetadataCache,
        watcher: Optional[FileWatcher] = None,
        video_extensions: Collection[str] = (".mp4", ".mkv", ".webm"),
        image_extensions: Collection[str] = (".webp", ".jpg", ".jpeg", ".png"),
        concurrency: int = 50,
        verbose: bool = False,
    ):
        self.cache = cache
        self.watcher = watcher
        self.convention = Convention(video_extensions, image_extensions)
        self.concurrency = concurrency
        self.gate = ScanGate(concurrency)
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config, cache: MetadataCache, watcher: Optional[FileWatcher] = None) -> "Indexer":
        return cls(
            cache,
            watcher,
            video_extensions=config.video_extensions,
            image_extensions=config.image_extensions,
            concurrency=config.scan_concurrency,
            verbose=config.verbose,
        )

    # ------------------------------------------------------------------
    # Playlists
    # ------------------------------------------------------------------

    def scan_playlists(self, directory) -> List[Playlist]:
        """
        Lists every immediate subdirectory that carries a "000 - " marker.
        """
        root = self._require_dir(directory)
        self._watch(root)

        with PerformanceTimer(f"scan_playlists {root}", self.verbose):
            children = self.gate.listdir(root)
            with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
                results = list(executor.map(self._read_playlist, [root / c for c in children]))

        playlists = [p for p in results if p is not None]
        playlists.sort(key=lambda p: p.title.casefold())
        self.logger.info(f"Found {len(playlists)} playlists in {root}")
        return playlists

    def _read_playlist(self, path: Path) -> Optional[Playlist]:
        try:
            st = self.gate.stat(path)
            if not stat.S_ISDIR(st.st_mode):
                return None
            names = self.gate.listdir(path)
        except OSError:
            return None

        marker = self.convention.find_marker(names)
        if not marker:
            return None

        playlist_id = None
        title = path.name
        uploader = "Unknown"
        cover = None

        info_file = self.convention.find_marker_info(names)
        if info_file:
            info = self._metadata(path / info_file)
            playlist_id = info.id or None
            title = info.title or title
            uploader = info.uploader or uploader
            cover_name = self.convention.find_image(info_file[: -len(INFO_SUFFIX)], names)
            if cover_name:
                cover = path / cover_name

        if not playlist_id:
            playlist_id = extract_bracket_id(marker)

        name_set = set(names)
        video_names = self.convention.videos(names)
        total_duration = 0.0
        for video_name in video_names:
            sidecar = self.convention.info_name(media_basename(video_name))
            if sidecar in name_set:
                total_duration += self._metadata(path / sidecar).duration or 0

        return Playlist(
            id=playlist_id,
            name=path.name,
            title=title,
            cover=cover,
            video_count=len(video_names),
            total_duration=total_duration,
            uploader=uploader,
            updated_at=st.st_mtime,
        )

    # ------------------------------------------------------------------
    # Videos of one playlist
    # ------------------------------------------------------------------

    def scan_playlist_videos(self, directory, playlist_id: str) -> Optional[PlaylistDetails]:
        """
        Videos of the playlist whose marker carries "[playlist_id]", in
        directory-listing order. None when no such playlist exists.
        """
        root = self._require_dir(directory)
        self._watch(root)

        playlist_dir = self.find_playlist_dir(root, playlist_id)
        if playlist_dir is None:
            return None

        try:
            names = self.gate.listdir(playlist_dir)
        except OSError as e:
            self.logger.warning(f"Cannot read playlist directory {playlist_dir}: {e}")
            return None

        title = playlist_dir.name
        info_file = self.convention.find_marker_info(names)
        if info_file:
            title = self._metadata(playlist_dir / info_file).title or title

        name_set = set(names)
        video_names = self.convention.videos(names)
        with PerformanceTimer(f"scan_playlist_videos {playlist_dir}", self.verbose):
            with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
                videos = list(executor.map(
                    lambda name: self._read_playlist_video(playlist_dir, name, name_set),
                    video_names,
                ))

        return PlaylistDetails(title=title, videos=videos)

    def find_playlist_dir(self, root: Path, playlist_id: str) -> Optional[Path]:
        token = f"[{playlist_id}]"
        try:
            children = sorted(self.gate.listdir(root))
        except OSError:
            return None

        for child in children:
            path = root / child
            try:
                if not stat.S_ISDIR(self.gate.stat(path).st_mode):
                    continue
                marker = self.convention.find_marker(self.gate.listdir(path))
            except OSError:
                continue
            if marker and token in marker:
                return path
        return None

    def _read_playlist_video(self, directory: Path, name: str, names: Set[str]) -> VideoItem:
        basename = media_basename(name)
        sidecar = self.convention.info_name(basename)
        info = self._metadata(directory / sidecar) if sidecar in names else MinifiedMetadata()

        description = ""
        description_name = self.convention.description_name(basename)
        if description_name in names:
            try:
                description = self.gate.read_text(directory / description_name)
            except (OSError, ValueError):
                description = ""

        return VideoItem(
            id=info.id,
            filename=name,
            title=info.display_title or name,
            path=directory / name,
            uploader=info.uploader,
            uploader_url=info.uploader_url,
            channel_url=info.channel_url,
            upload_date=info.upload_date,
            timestamp=info.timestamp,
            duration=info.duration,
            chapters=info.chapters,
            description=description,
            thumbnail=self._thumbnail(directory, basename, names),
        )

    # ------------------------------------------------------------------
    # Whole tree
    # ------------------------------------------------------------------

    def scan_all_videos(self, directory) -> List[VideoItem]:
        """
        Every video below ``directory`` at any depth, newest first.
        """
        root = self._require_dir(directory)
        self._watch(root)

        results: List[VideoItem] = []
        visited: Set[Tuple[int, int]] = set()

        with PerformanceTimer(f"scan_all_videos {root}", self.verbose):
            with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
                pending = set()

                def submit(path: Path):
                    try:
                        st = self.gate.stat(path)
                    except OSError:
                        return
                    key = (st.st_dev, st.st_ino)
                    if key in visited:
                        self.logger.debug(f"Skipping already visited directory {path}")
                        return
                    visited.add(key)
                    pending.add(executor.submit(self._walk_dir, path))

                submit(root)
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        videos, subdirs = future.result()
                        results.extend(videos)
                        for subdir in subdirs:
                            submit(subdir)

        results.sort(key=newest_first_key, reverse=True)
        self.logger.info(f"Found {len(results)} videos under {root}")
        return results

    def _walk_dir(self, directory: Path) -> Tuple[List[VideoItem], List[Path]]:
        try:
            entries = self.gate.scandir(directory)
        except OSError:
            return [], []

        subdirs = [directory / name for name, is_dir in entries if is_dir]
        names = [name for name, is_dir in entries if not is_dir]
        video_names = self.convention.videos(names)
        if not video_names:
            return [], subdirs

        # Resolved once per directory, shared by all of its videos.
        playlist_id, playlist_name = self._directory_playlist(directory, names)
        name_set = set(names)
        videos = [
            self._read_tree_video(directory, name, name_set, playlist_id, playlist_name)
            for name in video_names
        ]
        return videos, subdirs

    def _directory_playlist(self, directory: Path, names: List[str]) -> Tuple[Optional[str], str]:
        playlist_name = directory.name
        marker = self.convention.find_marker(names)
        if not marker:
            return None, playlist_name

        playlist_id = extract_bracket_id(marker)
        if playlist_id:
            info_file = self.convention.find_marker_info(names) or marker
            info = self._metadata(directory / info_file)
            playlist_name = info.display_title or playlist_name
        return playlist_id, playlist_name

    def _read_tree_video(
        self,
        directory: Path,
        name: str,
        names: Set[str],
        playlist_id: Optional[str],
        playlist_name: str,
    ) -> VideoItem:
        path = directory / name
        basename = media_basename(name)
        sidecar = self.convention.info_name(basename)
        info = self._metadata(directory / sidecar) if sidecar in names else MinifiedMetadata()

        try:
            ctime = self.gate.stat(path).st_ctime
        except OSError:
            ctime = 0.0

        return VideoItem(
            id=info.id or extract_bracket_id(name),
            filename=name,
            title=info.display_title or name,
            path=path,
            uploader=info.uploader,
            uploader_url=info.uploader_url,
            channel_url=info.channel_url,
            upload_date=info.upload_date,
            timestamp=info.timestamp,
            duration=info.duration,
            chapters=info.chapters,
            thumbnail=self._thumbnail(directory, basename, names),
            playlist_id=playlist_id,
            playlist_name=playlist_name,
            ctime=ctime,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_dir(self, directory) -> Path:
        root = Path(os.path.abspath(directory))
        if not root.is_dir():
            raise DirectoryNotFound(directory)
        return root

    def _watch(self, root: Path):
        if self.watcher is not None:
            self.watcher.watch(root)

    def _metadata(self, sidecar: Path) -> MinifiedMetadata:
        return self.gate.run(self.cache.get, sidecar)

    def _thumbnail(self, directory: Path, basename: str, names: Set[str]) -> Optional[Path]:
        image = self.convention.find_image(basename, names)
        return directory / image if image else None


def newest_first_key(video: VideoItem):
    """
    Sort key (use with reverse=True): dated videos by upload_date, then
    undated ones by ctime.
    """
    if video.upload_date:
        return (1, video.upload_date)
    return (0, video.ctime or 0.0)
