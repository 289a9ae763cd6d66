# Copyright (c) 2025 Trae AI. All rights reserved.

import pytest
from typer.testing import CliRunner
from videoshelf.cli.main import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"cache_file_path: {tmp_path / 'cache.json'}\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def library_tree(library_dir, write_info, touch):
    course = library_dir / "Course"
    write_info(course / "000 - Course [abc123].info.json", {"title": "Full Title", "uploader": "X"})
    touch(course / "a.mp4")
    write_info(course / "a.info.json", {"title": "Go Basics", "upload_date": "20240101", "duration": 125})
    return library_dir


def test_playlists_command(config_file, library_tree):
    result = runner.invoke(app, ["playlists", str(library_tree), "--config-path", config_file])

    assert result.exit_code == 0
    assert "Full Title" in result.stdout
    assert "abc123" in result.stdout
    assert "Found 1 playlists" in result.stdout


def test_playlist_command(config_file, library_tree):
    result = runner.invoke(app, ["playlist", str(library_tree), "abc123", "--config-path", config_file])

    assert result.exit_code == 0
    assert "Go Basics" in result.stdout
    assert "2:05" in result.stdout


def test_unknown_playlist_exits_with_error(config_file, library_tree):
    result = runner.invoke(app, ["playlist", str(library_tree), "nope", "--config-path", config_file])
    assert result.exit_code == 1


def test_search_command(config_file, library_tree):
    result = runner.invoke(app, ["search", str(library_tree), "go", "--config-path", config_file])

    assert result.exit_code == 0
    assert "Go Basics" in result.stdout


def test_missing_directory_exits_with_error(config_file, tmp_path):
    result = runner.invoke(app, ["videos", str(tmp_path / "nope"), "--config-path", config_file])
    assert result.exit_code == 1
    assert "Directory not found" in result.stdout


def test_cache_clear_command(config_file, library_tree):
    runner.invoke(app, ["videos", str(library_tree), "--config-path", config_file])
    result = runner.invoke(app, ["cache-clear", str(library_tree), "--config-path", config_file])

    assert result.exit_code == 0
    assert "Removed 2 cache entries" in result.stdout
