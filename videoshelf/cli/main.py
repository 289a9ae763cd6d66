# Copyright (c) 2025 Trae AI. All rights reserved.

import logging
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.table import Table
from ..core.config import Config
from ..core.models import VideoItem
from ..services.indexer_service import DirectoryNotFound
from ..services.library_service import LibraryService

app = typer.Typer(help="VideoShelf - Browse and search a downloaded video library.")
console = Console()


def _open_library(config_path: str, watch: bool = False) -> LibraryService:
    try:
        config = Config.load(config_path)
    except Exception as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)

    logging.basicConfig(level=logging.DEBUG if config.verbose else logging.WARNING)
    # One-shot commands have nothing to keep in sync.
    config.watch_enabled = watch
    return LibraryService(config)


def _format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "-"
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _format_date(upload_date: Optional[str]) -> str:
    if not upload_date or len(upload_date) != 8:
        return upload_date or "-"
    return f"{upload_date[:4]}-{upload_date[4:6]}-{upload_date[6:]}"


def _video_table(title: str, videos: List[VideoItem], show_playlist: bool = False) -> Table:
    table = Table(title=title)
    table.add_column("Date", style="cyan")
    table.add_column("Title", style="magenta")
    table.add_column("Duration", style="green")
    table.add_column("ID", style="yellow")
    if show_playlist:
        table.add_column("Playlist")

    for video in videos:
        row = [
            _format_date(video.upload_date),
            video.title,
            _format_duration(video.duration),
            video.id or "-",
        ]
        if show_playlist:
            row.append(video.playlist_name or "-")
        table.add_row(*row)
    return table


@app.command("playlists")
def list_playlists(directory: Path, config_path: str = "config.yaml"):
    """
    List the playlists of a library directory.
    """
    library = _open_library(config_path)
    try:
        playlists = library.scan_playlists(directory)
    except DirectoryNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        library.shutdown()

    table = Table(title="Playlists")
    table.add_column("ID", style="yellow")
    table.add_column("Title", style="magenta")
    table.add_column("Uploader", style="cyan")
    table.add_column("Videos", justify="right")
    table.add_column("Duration", style="green")
    for playlist in playlists:
        table.add_row(
            playlist.id or "-",
            playlist.title,
            playlist.uploader,
            str(playlist.video_count),
            _format_duration(playlist.total_duration),
        )

    console.print(table)
    console.print(f"\nFound [bold]{len(playlists)}[/bold] playlists.")


@app.command("playlist")
def show_playlist(directory: Path, playlist_id: str, config_path: str = "config.yaml"):
    """
    List the videos of one playlist.
    """
    library = _open_library(config_path)
    try:
        details = library.scan_playlist_videos(directory, playlist_id)
    except DirectoryNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        library.shutdown()

    if details is None:
        console.print(f"[yellow]Playlist {playlist_id} not found.[/yellow]")
        raise typer.Exit(1)

    console.print(_video_table(details.title, details.videos))


@app.command("videos")
def list_videos(directory: Path, limit: int = 50, config_path: str = "config.yaml"):
    """
    List every video below a directory, newest first.
    """
    library = _open_library(config_path)
    try:
        videos = library.scan_all_videos(directory)
    except DirectoryNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        library.shutdown()

    console.print(_video_table("Videos", videos[:limit], show_playlist=True))
    console.print(f"\nFound [bold]{len(videos)}[/bold] videos.")


@app.command("search")
def search_videos(directory: Path, query: str, limit: int = 20, config_path: str = "config.yaml"):
    """
    Search video titles. Supports +required words and "exact phrases".
    """
    library = _open_library(config_path)
    try:
        results = library.search(directory, query)
    except DirectoryNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        library.shutdown()

    if not results:
        console.print("[yellow]No matches.[/yellow]")
        return
    console.print(_video_table(f"Results for {query}", results[:limit], show_playlist=True))


@app.command("cache-clear")
def clear_cache(prefix: Path, config_path: str = "config.yaml"):
    """
    Drop cached metadata for every sidecar under a path.
    """
    library = _open_library(config_path)
    try:
        removed = library.clear_cache(prefix)
    finally:
        library.shutdown()
    console.print(f"[green]Removed {removed} cache entries.[/green]")


if __name__ == "__main__":
    app()
