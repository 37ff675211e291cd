"""
Error taxonomy for the Focus Music Tool.

Lower layers raise these; only the handlers, the HTTP routes and the CLI turn
them into user-facing text. None of them is retried.
"""

from __future__ import annotations


class FocusMusicError(Exception):
    """Base exception for every expected failure in the tool."""


class SpotifyError(FocusMusicError):
    """Base exception for Spotify-related issues."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamAuthError(SpotifyError):
    """Spotify's identity provider rejected a token operation or profile fetch."""


class UpstreamAPIError(SpotifyError):
    """Spotify's Web API rejected a data operation (search, playlist writes)."""


class UserNotAuthenticated(FocusMusicError):
    """No local user, or the user has no access token on record."""


class ReauthRequired(FocusMusicError):
    """The access token expired and there is no refresh token to mint a new one."""


class NoTracksFound(FocusMusicError):
    """The search succeeded but matched nothing."""

    def __init__(self, mood: str, query: str) -> None:
        super().__init__(f"No tracks found for mood: {mood}")
        self.mood = mood
        self.query = query


__all__ = [
    "FocusMusicError",
    "SpotifyError",
    "UpstreamAuthError",
    "UpstreamAPIError",
    "UserNotAuthenticated",
    "ReauthRequired",
    "NoTracksFound",
]
