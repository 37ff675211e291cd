"""
FastAPI app for the Focus Music Tool.

Routes:

- GET /                        plain-text banner
- GET /health                  mood/track counts
- GET /auth/spotify            redirect to Spotify's authorize page
- GET /auth/spotify/callback   finish the OAuth flow, upsert the user
- /mcp                         MCP streamable-HTTP transport

OpenAPI docs come from FastAPI at /openapi.json and /docs.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel

from .mcp_server import mcp
from .services import close_workflow, get_workflow

logger = logging.getLogger(__name__)

APP_TITLE = "Focus Music Tool MCP Server"
APP_VERSION = "1.0.0"

_mcp_app = mcp.streamable_http_app()


@asynccontextmanager
async def lifespan(_: FastAPI):
    async with mcp.session_manager.run():
        logger.info("MCP session manager started")
        try:
            yield
        finally:
            close_workflow()


app = FastAPI(
    title=APP_TITLE,
    description="MCP server for generating focus playlists with Spotify integration",
    version=APP_VERSION,
    lifespan=lifespan,
)


class HealthOut(BaseModel):
    status: str
    moods_available: int
    tracks_available: int
    timestamp: str


@app.get("/", response_class=PlainTextResponse, tags=["system"])
def index() -> str:
    return APP_TITLE


@app.get("/health", response_model=HealthOut, tags=["system"])
def health():
    logger.debug("Health check endpoint called")
    try:
        moods, tracks = get_workflow().stats()
    except Exception as exc:
        logger.error(f"Health check failed: {exc}")
        return JSONResponse({"status": "error", "error": str(exc)}, status_code=500)

    return HealthOut(
        status="healthy",
        moods_available=moods,
        tracks_available=tracks,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/auth/spotify", tags=["auth"])
def auth_spotify() -> RedirectResponse:
    """
    Redirect the user to Spotify's authorize page to connect their account.
    """
    logger.info("OAuth login initiated")
    return RedirectResponse(get_workflow().authorization_url(), status_code=302)


@app.get("/auth/spotify/callback", response_class=PlainTextResponse, tags=["auth"])
def auth_spotify_callback(
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
) -> PlainTextResponse:
    """
    Spotify redirects here after the user approves or denies access.
    """
    if error:
        logger.warning(f"OAuth callback: user denied access - {error}")
        return PlainTextResponse(f"Authentication error: {error}", status_code=400)

    if not code:
        logger.warning("OAuth callback: no authorization code received")
        return PlainTextResponse("Missing authorization code", status_code=400)

    try:
        user = get_workflow().authenticate(code)
    except Exception as exc:
        logger.error(f"OAuth callback failed: {exc}")
        return PlainTextResponse(f"Authentication failed: {exc}", status_code=500)

    return PlainTextResponse(
        f"Successfully authenticated! Welcome {user.display_name}. Your user ID is: {user.id}"
    )


# Last, so the FastAPI routes above win; the MCP app itself only serves /mcp.
app.mount("/", _mcp_app)
