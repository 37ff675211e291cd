"""
Text replies for the tool surface.

The MCP tools and the HTTP routes both go through these functions, so the
wording of every success and failure message lives in one place. Named
failures become their fixed message; anything else is reported with its
message text and never re-raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import NoTracksFound, ReauthRequired, UserNotAuthenticated
from .workflow import DEFAULT_TRACK_COUNT, PlaylistWorkflow, validate_track_count

logger = logging.getLogger(__name__)

NO_MOODS_MESSAGE = "No moods available. Try creating a playlist first!"
NO_PLAYLISTS_MESSAGE = "No playlists found for this user."
NOT_AUTHENTICATED_MESSAGE = "User not found or not authenticated with Spotify"
REAUTH_MESSAGE = "Access token expired and no refresh token available. Please re-authenticate."


@dataclass
class ToolReply:
    text: str
    is_error: bool = False


def auth_url_reply(workflow: PlaylistWorkflow, state: Optional[str] = None) -> ToolReply:
    url = workflow.authorization_url(state)
    return ToolReply(f"Please visit this URL to authenticate with Spotify: {url}")


def authenticate_reply(workflow: PlaylistWorkflow, code: str) -> ToolReply:
    try:
        user = workflow.authenticate(code)
    except Exception as exc:
        logger.error(f"Authentication failed: {exc}")
        return ToolReply(f"Authentication failed: {exc}", is_error=True)
    return ToolReply(f"Successfully authenticated! User: {user.display_name} ({user.email})")


def generate_playlist_reply(
    workflow: PlaylistWorkflow,
    user_id: str,
    mood: str,
    playlist_name: str,
    track_count: int = DEFAULT_TRACK_COUNT,
    is_public: bool = False,
) -> ToolReply:
    try:
        validate_track_count(track_count)
    except ValueError as exc:
        return ToolReply(str(exc), is_error=True)

    try:
        result = workflow.generate_playlist(
            user_id,
            mood,
            playlist_name,
            track_count=track_count,
            is_public=is_public,
        )
    except UserNotAuthenticated:
        return ToolReply(NOT_AUTHENTICATED_MESSAGE, is_error=True)
    except ReauthRequired:
        return ToolReply(REAUTH_MESSAGE, is_error=True)
    except NoTracksFound as exc:
        return ToolReply(str(exc), is_error=True)
    except Exception as exc:
        logger.error(f"Failed to create playlist for user {user_id}: {exc}")
        return ToolReply(f"Failed to create playlist: {exc}", is_error=True)

    return ToolReply(
        f'Successfully created Spotify playlist "{result.name}" with {result.track_count} tracks!\n'
        f"Playlist URL: {result.url}"
    )


def moods_reply(workflow: PlaylistWorkflow) -> ToolReply:
    try:
        moods = workflow.list_moods()
    except Exception as exc:
        logger.error(f"Error fetching moods: {exc}")
        return ToolReply(f"Error fetching moods: {exc}", is_error=True)

    if moods:
        listing = "\n".join(f"- {m.name}: {m.description or 'No description'}" for m in moods)
    else:
        listing = NO_MOODS_MESSAGE
    return ToolReply(f"Available moods:\n{listing}")


def user_playlists_reply(workflow: PlaylistWorkflow, user_id: str) -> ToolReply:
    try:
        playlists = workflow.list_user_playlists(user_id)
    except Exception as exc:
        logger.error(f"Error fetching playlists for user {user_id}: {exc}")
        return ToolReply(f"Error fetching playlists: {exc}", is_error=True)

    if not playlists:
        return ToolReply(NO_PLAYLISTS_MESSAGE)

    listing = "\n".join(
        f"- {p.name} ({p.track_count} tracks, {p.mood_name or 'No mood'}) - {p.url}" for p in playlists
    )
    return ToolReply(f"Your Spotify playlists:\n{listing}")


__all__ = [
    "NO_MOODS_MESSAGE",
    "NO_PLAYLISTS_MESSAGE",
    "NOT_AUTHENTICATED_MESSAGE",
    "REAUTH_MESSAGE",
    "ToolReply",
    "auth_url_reply",
    "authenticate_reply",
    "generate_playlist_reply",
    "moods_reply",
    "user_playlists_reply",
]
