"""
Relational schema: users, moods, tracks, mood_tracks, playlists and
spotify_playlists.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base, utc_now

# energy_level / focus_rating are random stand-ins, not derived from audio.
PLACEHOLDER_RATING_SOURCE = "placeholder"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Spotify account linked to the tool, with its OAuth token pair."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    spotify_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    access_token: Mapped[Optional[str]] = mapped_column(Text)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text)
    token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    spotify_playlists: Mapped[list[SpotifyPlaylist]] = relationship(back_populates="user")


class Mood(Base):
    __tablename__ = "moods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    mood_tracks: Mapped[list[MoodTrack]] = relationship(back_populates="mood")
    playlists: Mapped[list[Playlist]] = relationship(back_populates="mood")
    spotify_playlists: Mapped[list[SpotifyPlaylist]] = relationship(back_populates="mood")


class Track(Base):
    """
    Denormalized copy of a Spotify track, written once on first sight and
    never refreshed.
    """

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    artist: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    album: Mapped[Optional[str]] = mapped_column(String(512))
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    spotify_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True)
    energy_level: Mapped[Optional[int]] = mapped_column(Integer)
    focus_rating: Mapped[Optional[int]] = mapped_column(Integer)
    rating_source: Mapped[str] = mapped_column(
        String(32), nullable=False, default=PLACEHOLDER_RATING_SOURCE
    )
    # Reserved for real audio features; nothing writes it yet.
    audio_features: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    mood_tracks: Mapped[list[MoodTrack]] = relationship(back_populates="track")


class MoodTrack(Base):
    """Mood/track association with an optional weight, reserved for ranking."""

    __tablename__ = "mood_tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mood_id: Mapped[int] = mapped_column(ForeignKey("moods.id"), nullable=False, index=True)
    track_id: Mapped[int] = mapped_column(ForeignKey("tracks.id"), nullable=False, index=True)
    weight: Mapped[Optional[int]] = mapped_column(Integer)

    mood: Mapped[Mood] = relationship(back_populates="mood_tracks")
    track: Mapped[Track] = relationship(back_populates="mood_tracks")


class Playlist(Base):
    """Local playlist independent of Spotify. Declared, not written by any workflow."""

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mood_id: Mapped[Optional[int]] = mapped_column(ForeignKey("moods.id"), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    track_count: Mapped[Optional[int]] = mapped_column(Integer)
    total_duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    mood: Mapped[Optional[Mood]] = relationship(back_populates="playlists")


class SpotifyPlaylist(Base):
    __tablename__ = "spotify_playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    spotify_playlist_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    mood_id: Mapped[Optional[int]] = mapped_column(ForeignKey("moods.id"))
    track_count: Mapped[Optional[int]] = mapped_column(Integer)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    user: Mapped[User] = relationship(back_populates="spotify_playlists")
    mood: Mapped[Optional[Mood]] = relationship(back_populates="spotify_playlists")


__all__ = [
    "PLACEHOLDER_RATING_SOURCE",
    "Mood",
    "MoodTrack",
    "Playlist",
    "SpotifyPlaylist",
    "Track",
    "User",
]
