"""
MCP tool surface for the Focus Music Tool.

Tools are thin adapters over `focus_music.handlers`; error replies are raised
as ToolError so MCP clients see ``isError``. The blocking workflow runs in a
worker thread to keep the event loop free.
"""

from __future__ import annotations

import logging
from typing import Annotated, Callable, Optional

import anyio
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import Field

from . import handlers
from .config import McpConfig, load_mcp_config
from .handlers import ToolReply
from .services import get_workflow
from .workflow import DEFAULT_TRACK_COUNT, MAX_TRACK_COUNT, MIN_TRACK_COUNT

logger = logging.getLogger(__name__)

SERVER_NAME = "focus-music-tool"

MCP_HTTP_PATH = "/mcp"


def transport_security_for(cfg: McpConfig) -> TransportSecuritySettings:
    """
    Host/Origin checks for the HTTP transport. With no allow-list configured
    the checks are off, so the server answers on whatever name it is reached by.
    """
    if not cfg.allowed_hosts:
        return TransportSecuritySettings(enable_dns_rebinding_protection=False)
    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=cfg.allowed_hosts,
        allowed_origins=cfg.allowed_origins,
    )


mcp = FastMCP(
    SERVER_NAME,
    instructions="MCP server for generating focus playlists with Spotify integration",
    streamable_http_path=MCP_HTTP_PATH,
    transport_security=transport_security_for(load_mcp_config()),
)


async def _run(fn: Callable[..., ToolReply], *args) -> str:
    def call() -> ToolReply:
        return fn(get_workflow(), *args)

    reply = await anyio.to_thread.run_sync(call)
    if reply.is_error:
        raise ToolError(reply.text)
    return reply.text


@mcp.tool()
async def get_spotify_auth_url(
    state: Annotated[Optional[str], Field(description="Optional state parameter for OAuth flow")] = None,
) -> str:
    """Return the Spotify authorization URL the user has to visit."""
    return await _run(handlers.auth_url_reply, state)


@mcp.tool()
async def authenticate_spotify(
    code: Annotated[str, Field(description="Authorization code from Spotify OAuth callback")],
) -> str:
    """Exchange an authorization code for tokens and store the Spotify user."""
    return await _run(handlers.authenticate_reply, code)


@mcp.tool()
async def generate_spotify_playlist(
    userId: Annotated[str, Field(description="User ID from the database")],
    mood: Annotated[str, Field(description="Mood for the playlist (e.g., 'focused', 'energetic', 'calm')")],
    playlistName: Annotated[str, Field(description="Name for the new Spotify playlist")],
    trackCount: Annotated[
        int,
        Field(ge=MIN_TRACK_COUNT, le=MAX_TRACK_COUNT, description="Number of tracks to include"),
    ] = DEFAULT_TRACK_COUNT,
    isPublic: Annotated[bool, Field(description="Whether the playlist should be public")] = False,
) -> str:
    """Create a mood playlist in the user's Spotify account."""
    logger.info(f"MCP generate_spotify_playlist: user={userId}, mood={mood!r}")
    return await _run(handlers.generate_playlist_reply, userId, mood, playlistName, trackCount, isPublic)


@mcp.tool()
async def get_available_moods() -> str:
    """List the moods playlists have been generated for."""
    return await _run(handlers.moods_reply)


@mcp.tool()
async def get_user_playlists(
    userId: Annotated[str, Field(description="User ID from the database")],
) -> str:
    """List the Spotify playlists generated for a user."""
    return await _run(handlers.user_playlists_reply, userId)


__all__ = ["MCP_HTTP_PATH", "SERVER_NAME", "mcp", "transport_security_for"]
