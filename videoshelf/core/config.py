# Copyright (c) 2025 Trae AI. All rights reserved.

import yaml
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel

class Config(BaseModel):
    library_dir: Optional[Path] = None
    cache_file_path: Path = Path("cache") / "metadata-store.json"
    video_extensions: List[str] = [".mp4", ".mkv", ".webm"]
    # Probe order matters: first match wins.
    image_extensions: List[str] = [".webp", ".jpg", ".jpeg", ".png"]
    cache_max_entries: int = 15000
    cache_save_delay_seconds: float = 5.0
    scan_concurrency: int = 50
    watch_enabled: bool = True
    watch_depth: int = 3
    watch_stability_seconds: float = 2.0
    server_port: int = 3000
    server_host: str = "127.0.0.1"
    verbose: bool = False

    @classmethod
    def load(cls, path: str = "config.yaml") -> "Config":
        config_file = Path(path)
        if not config_file.exists():
            return cls()
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))
