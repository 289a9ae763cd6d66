# Copyright (c) 2025 Trae AI. All rights reserved.

import json
import pytest
from pathlib import Path
from videoshelf.core.config import Config
from videoshelf.services.metadata_cache import MetadataCache

@pytest.fixture
def config(tmp_path):
    return Config(
        cache_file_path=tmp_path / "cache" / "metadata-store.json",
        watch_enabled=False,
        cache_save_delay_seconds=60,
    )

@pytest.fixture
def cache(config):
    cache = MetadataCache.from_config(config)
    yield cache
    cache._save_task.cancel()

@pytest.fixture
def library_dir(tmp_path):
    root = tmp_path / "lib"
    root.mkdir()
    return root

@pytest.fixture
def write_info():
    def _write(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write

@pytest.fixture
def touch():
    def _touch(path: Path, content: str = "") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _touch
