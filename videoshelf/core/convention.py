# Copyright (c) 2025 Trae AI. All rights reserved.

import re
from pathlib import PurePath
from typing import Collection, Iterable, List, Optional

MARKER_PREFIX = "000 - "
INFO_SUFFIX = ".info.json"
DESCRIPTION_SUFFIX = ".description"

BRACKET_ID_PATTERN = re.compile(r"\[([a-zA-Z0-9_-]+)\]")


def extract_bracket_id(name: str) -> Optional[str]:
    """
    First "[ID]" token of a filename, e.g. "Lecture 1 [aB3-xyz].mp4" -> "aB3-xyz".
    """
    match = BRACKET_ID_PATTERN.search(name)
    return match.group(1) if match else None


def media_basename(name: str) -> str:
    """Filename without its last extension."""
    return name[: -len(PurePath(name).suffix)] if PurePath(name).suffix else name


class Convention:
    """
    The downloader's on-disk naming convention: which files are videos,
    which one marks a playlist, and how sidecars pair with a video.
    """

    def __init__(self, video_extensions: Iterable[str], image_extensions: Iterable[str]):
        self.video_extensions = {ext.lower() for ext in video_extensions}
        self.image_extensions: List[str] = [ext.lower() for ext in image_extensions]

    def is_video(self, name: str) -> bool:
        return PurePath(name).suffix.lower() in self.video_extensions

    def videos(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if self.is_video(name)]

    @staticmethod
    def find_marker(names: Iterable[str]) -> Optional[str]:
        markers = sorted(name for name in names if name.startswith(MARKER_PREFIX))
        return markers[0] if markers else None

    @staticmethod
    def find_marker_info(names: Iterable[str]) -> Optional[str]:
        infos = sorted(
            name for name in names
            if name.startswith(MARKER_PREFIX) and name.endswith(INFO_SUFFIX)
        )
        return infos[0] if infos else None

    @staticmethod
    def info_name(basename: str) -> str:
        return basename + INFO_SUFFIX

    @staticmethod
    def description_name(basename: str) -> str:
        return basename + DESCRIPTION_SUFFIX

    def find_image(self, basename: str, names: Collection[str]) -> Optional[str]:
        """
        Probes basename + each image extension in order; first hit wins.
        """
        for ext in self.image_extensions:
            candidate = basename + ext
            if candidate in names:
                return candidate
        return None
