"""
CLI entrypoint for the Focus Music Tool.

Commands:
- serve: run the FastAPI app (HTTP routes + MCP over streamable HTTP).
- mcp: run the MCP server over stdio.
- init-db: create the database tables.
- moods / playlists: inspect what has been stored.
- audio-features: fetch Spotify audio features for cached tracks.
"""

from typing import List

import typer
from rich.console import Console
from rich.table import Table
import uvicorn

from .config import load_config
from .db import init_db, make_engine
from .services import get_workflow


app = typer.Typer(help="Focus Music Tool – mood playlists on Spotify via MCP.")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind the API server to."),
    port: int = typer.Option(8000, help="Port to bind the API server to."),
    reload: bool = typer.Option(False, help="Enable auto-reload (development only)."),
) -> None:
    """
    Run the FastAPI app.

    Example:
        focus-music serve --host 0.0.0.0 --port 8000
    """
    uvicorn.run(
        "focus_music.api:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command("mcp")
def mcp_stdio() -> None:
    """
    Run the MCP server over stdio (for desktop MCP clients).
    """
    from .mcp_server import mcp

    mcp.run()


@app.command("init-db")
def init_database() -> None:
    """
    Create the database tables if they don't exist.
    """
    console = Console()
    cfg = load_config()
    engine = make_engine(cfg.database)
    try:
        init_db(engine)
    except Exception as exc:
        console.print(f"[bold red]Database error:[/bold red] {exc}")
        raise typer.Exit(1)
    console.print(f"[bold green]Database ready:[/bold green] {engine.url.render_as_string(hide_password=True)}")


@app.command("moods")
def moods() -> None:
    """
    List stored moods.
    """
    console = Console()
    try:
        rows = get_workflow().list_moods()
    except Exception as exc:
        console.print(f"[bold red]Error fetching moods:[/bold red] {exc}")
        raise typer.Exit(1)

    if not rows:
        console.print("[bold yellow]No moods available. Try creating a playlist first![/bold yellow]")
        raise typer.Exit(0)

    table = Table(title="Moods", show_lines=False)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Mood", style="bold")
    table.add_column("Description", style="dim")
    for mood in rows:
        table.add_row(str(mood.id), mood.name, mood.description or "No description")
    console.print(table)


@app.command("playlists")
def playlists(
    user_id: str = typer.Argument(..., help="User ID from the database"),
) -> None:
    """
    List the Spotify playlists generated for a user.
    """
    console = Console()
    try:
        rows = get_workflow().list_user_playlists(user_id)
    except Exception as exc:
        console.print(f"[bold red]Error fetching playlists:[/bold red] {exc}")
        raise typer.Exit(1)

    if not rows:
        console.print("[bold yellow]No playlists found for this user.[/bold yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Playlists – {user_id}", show_lines=False)
    table.add_column("Playlist", style="bold")
    table.add_column("Mood", style="magenta")
    table.add_column("Tracks", justify="right")
    table.add_column("Public")
    table.add_column("URL", style="dim")
    for playlist in rows:
        table.add_row(
            playlist.name,
            playlist.mood_name or "No mood",
            str(playlist.track_count or 0),
            "yes" if playlist.is_public else "no",
            playlist.url,
        )
    console.print(table)


@app.command("audio-features")
def audio_features(
    user_id: str = typer.Argument(..., help="User ID whose Spotify token is used"),
    track_ids: List[str] = typer.Argument(..., help="Spotify track IDs already stored locally"),
) -> None:
    """
    Fetch Spotify audio features and store them on the cached tracks.
    """
    console = Console()
    try:
        stored = get_workflow().store_audio_features(user_id, track_ids)
    except Exception as exc:
        console.print(f"[bold red]Error fetching audio features:[/bold red] {exc}")
        raise typer.Exit(1)

    console.print(f"[bold green]Stored audio features for {stored}/{len(track_ids)} tracks.[/bold green]")


if __name__ == "__main__":
    app()
