# Copyright (c) 2025 Trae AI. All rights reserved.

from pathlib import Path
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    start_time: float
    end_time: float
    title: str


class MinifiedMetadata(BaseModel):
    """
    Allow-listed projection of a sidecar ``.info.json`` document.
    Unknown keys are ignored and a field with the wrong type is dropped
    on its own instead of invalidating the whole record.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    fulltitle: Optional[str] = None
    uploader: Optional[str] = None
    upload_date: Optional[str] = None
    uploader_url: Optional[str] = None
    channel_url: Optional[str] = None
    timestamp: Optional[float] = None
    duration: Optional[float] = None
    chapters: Optional[List[Chapter]] = None

    @field_validator("*", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None

    @classmethod
    def from_raw(cls, raw: Any) -> "MinifiedMetadata":
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate(raw)

    @property
    def display_title(self) -> Optional[str]:
        return self.fulltitle or self.title

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class CacheEntry(BaseModel):
    mtime: int  # st_mtime_ns of the sidecar when it was read
    data: MinifiedMetadata


class VideoItem(BaseModel):
    """
    Represents a single video file and whatever its sidecars tell us about it.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    filename: str
    title: str
    path: Path
    uploader: Optional[str] = None
    uploader_url: Optional[str] = None
    channel_url: Optional[str] = None
    upload_date: Optional[str] = None  # YYYYMMDD
    timestamp: Optional[float] = None
    duration: Optional[float] = None
    chapters: Optional[List[Chapter]] = None
    description: Optional[str] = None
    thumbnail: Optional[Path] = None
    playlist_id: Optional[str] = Field(default=None, alias="playlistId")
    playlist_name: Optional[str] = Field(default=None, alias="playlistName")
    ctime: Optional[float] = None


class Playlist(BaseModel):
    """
    A directory carrying a "000 - " marker file.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str  # Directory name
    title: str
    cover: Optional[Path] = None
    video_count: int = Field(default=0, alias="videoCount", ge=0)
    total_duration: float = Field(default=0, alias="totalDuration")
    uploader: str = "Unknown"
    updated_at: float = Field(default=0.0, alias="updatedAt")


class PlaylistDetails(BaseModel):
    title: str
    videos: List[VideoItem] = Field(default_factory=list)
