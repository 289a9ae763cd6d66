# Copyright (c) 2025 Trae AI. All rights reserved.

import atexit
import logging
import sys
from pathlib import Path
from typing import Optional
from flask import Flask, jsonify, request, send_file
from ..core.config import Config
from ..services.indexer_service import DirectoryNotFound
from ..services.library_service import LibraryService


def _dump(items):
    return [item.model_dump(mode="json", by_alias=True) for item in items]


class Server:
    def __init__(
        self,
        config_path: str = "config.yaml",
        config: Optional[Config] = None,
        library: Optional[LibraryService] = None,
    ):
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[logging.StreamHandler(sys.stdout)]
        )
        self.logger = logging.getLogger("videoshelf.server.app")

        self.config = config or Config.load(config_path)
        if self.config.verbose:
            logging.getLogger("videoshelf").setLevel(logging.DEBUG)

        self.library = library or LibraryService(self.config)
        self.app = Flask(__name__)

        self._setup_routes()
        atexit.register(self.shutdown)

    def _directory_arg(self):
        directory = request.args.get("dir") or (
            str(self.config.library_dir) if self.config.library_dir else None
        )
        return directory

    def _setup_routes(self):
        @self.app.route("/api/playlists")
        def get_playlists():
            directory = self._directory_arg()
            if not directory:
                return jsonify({"error": "Directory path is required"}), 400
            try:
                playlists = self.library.scan_playlists(directory)
            except DirectoryNotFound:
                return jsonify({"error": "Directory not found"}), 404
            except OSError as e:
                self.logger.error(f"Failed to get playlists: {e}")
                return jsonify({"error": "Internal server error"}), 500
            return jsonify(_dump(playlists))

        @self.app.route("/api/playlist/<playlist_id>")
        def get_playlist_details(playlist_id):
            directory = self._directory_arg()
            if not directory:
                return jsonify({"error": "Directory path is required"}), 400
            try:
                details = self.library.scan_playlist_videos(directory, playlist_id)
            except DirectoryNotFound:
                return jsonify({"error": "Directory not found"}), 404
            except OSError as e:
                self.logger.error(f"Failed to get playlist {playlist_id}: {e}")
                return jsonify({"error": "Internal server error"}), 500
            if details is None:
                return jsonify({"error": "Playlist not found"}), 404
            return jsonify({"title": details.title, "videos": _dump(details.videos)})

        @self.app.route("/api/videos")
        def get_all_videos():
            directory = self._directory_arg()
            if not directory:
                return jsonify({"error": "Directory path is required"}), 400
            try:
                videos = self.library.scan_all_videos(directory)
            except DirectoryNotFound:
                return jsonify({"error": "Directory not found"}), 404
            except OSError as e:
                self.logger.error(f"Failed to scan all videos: {e}")
                return jsonify({"error": "Internal server error"}), 500
            return jsonify(_dump(videos))

        @self.app.route("/api/search")
        def search():
            directory = self._directory_arg()
            query = request.args.get("query")
            if not directory:
                return jsonify({"error": "Directory path is required"}), 400
            if not query:
                return jsonify({"error": "Query string is required"}), 400
            try:
                results = self.library.search(directory, query)
            except DirectoryNotFound:
                return jsonify({"error": "Directory not found"}), 404
            except OSError as e:
                self.logger.error(f"Search failed for {query!r}: {e}")
                return jsonify({"error": "Internal server error"}), 500
            return jsonify(_dump(results))

        @self.app.route("/api/file")
        def serve_file():
            file_path = request.args.get("path")
            if not file_path:
                return "Missing path", 400
            path = Path(file_path).resolve()
            if not path.is_file():
                self.logger.warning(f"File missing: {file_path}")
                return "File not found or access denied", 404
            return send_file(path)

    def shutdown(self):
        self.library.shutdown()

    def run(self):
        self.logger.info(f"Server running on {self.config.server_host}:{self.config.server_port}")
        try:
            self.app.run(host=self.config.server_host, port=self.config.server_port)
        finally:
            self.shutdown()


if __name__ == "__main__":
    server = Server()
    server.run()
