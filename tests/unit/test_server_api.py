# Copyright (c) 2025 Trae AI. All rights reserved.

import pytest
from videoshelf.server.app import Server


@pytest.fixture
def library_tree(library_dir, write_info, touch):
    course = library_dir / "Course [abc123]"
    write_info(course / "000 - Course [abc123].info.json", {"title": "Full Title", "uploader": "X"})
    touch(course / "000 - Course [abc123].jpg", "jpeg-bytes")
    touch(course / "a.mp4")
    write_info(course / "a.info.json", {"id": "va", "title": "Go Basics", "upload_date": "20240101", "duration": 10})
    touch(course / "b.mp4")
    write_info(course / "b.info.json", {"id": "vb", "title": "Python Basics", "upload_date": "20230101", "duration": 20})
    return library_dir


@pytest.fixture
def server(config):
    server = Server(config=config)
    yield server
    server.shutdown()


@pytest.fixture
def client(server):
    return server.app.test_client()


def test_playlists(client, library_tree):
    response = client.get("/api/playlists", query_string={"dir": str(library_tree)})

    assert response.status_code == 200
    data = response.get_json()
    assert len(data) == 1
    playlist = data[0]
    assert playlist["id"] == "abc123"
    assert playlist["title"] == "Full Title"
    assert playlist["videoCount"] == 2
    assert playlist["totalDuration"] == 30
    assert playlist["cover"].endswith("000 - Course [abc123].jpg")


def test_playlists_requires_dir(client):
    response = client.get("/api/playlists")
    assert response.status_code == 400


def test_playlists_uses_configured_library(config, library_tree):
    config.library_dir = library_tree
    server = Server(config=config)
    response = server.app.test_client().get("/api/playlists")
    server.shutdown()

    assert response.status_code == 200
    assert len(response.get_json()) == 1


def test_missing_directory_is_404(client, tmp_path):
    for url in ("/api/playlists", "/api/videos", "/api/playlist/x"):
        response = client.get(url, query_string={"dir": str(tmp_path / "nope")})
        assert response.status_code == 404
        assert response.get_json() == {"error": "Directory not found"}


def test_playlist_details(client, library_tree):
    response = client.get("/api/playlist/abc123", query_string={"dir": str(library_tree)})

    assert response.status_code == 200
    data = response.get_json()
    assert data["title"] == "Full Title"
    assert {v["id"] for v in data["videos"]} == {"va", "vb"}


def test_unknown_playlist_is_404(client, library_tree):
    response = client.get("/api/playlist/zzz", query_string={"dir": str(library_tree)})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Playlist not found"}


def test_all_videos_sorted_with_camel_case_fields(client, library_tree):
    response = client.get("/api/videos", query_string={"dir": str(library_tree)})

    data = response.get_json()
    assert [v["id"] for v in data] == ["va", "vb"]
    assert data[0]["playlistId"] == "abc123"
    assert data[0]["playlistName"] == "Full Title"


def test_search(client, library_tree):
    response = client.get("/api/search", query_string={"dir": str(library_tree), "query": "python"})

    assert response.status_code == 200
    assert [v["title"] for v in response.get_json()] == ["Python Basics"]


def test_search_requires_query(client, library_tree):
    response = client.get("/api/search", query_string={"dir": str(library_tree)})
    assert response.status_code == 400


def test_serve_file(client, library_tree):
    cover = library_tree / "Course [abc123]" / "000 - Course [abc123].jpg"

    response = client.get("/api/file", query_string={"path": str(cover)})
    assert response.status_code == 200
    assert response.data == b"jpeg-bytes"
    response.close()

    assert client.get("/api/file").status_code == 400
    assert client.get("/api/file", query_string={"path": str(library_tree / "x.jpg")}).status_code == 404
