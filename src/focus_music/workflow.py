"""
Playlist assembly workflow and the queries around it.

generate_playlist steps:
1) Load the user and make sure a usable access token exists (refreshing it
   through TokenManager when expired).
2) Map the mood to a search query and search Spotify.
3) Create the Spotify playlist and add every found track in one call.
4) Mirror the result locally: Mood (get-or-create), SpotifyPlaylist, and one
   Track row per previously unseen Spotify track.

Each database step commits on its own. A failure after step 3 leaves the
Spotify playlist in place without a local row; nothing reconciles that.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .db import session_scope
from .errors import NoTracksFound, UserNotAuthenticated
from .models import PLACEHOLDER_RATING_SOURCE, Mood, SpotifyPlaylist, Track, User
from .mood import mood_description, playlist_description, search_query_for
from .spotify import SpotifyClient, SpotifyProfile, SpotifyTrack, TokenGrant, playlist_url
from .tokens import TokenManager

logger = logging.getLogger(__name__)

MIN_TRACK_COUNT = 1
MAX_TRACK_COUNT = 50
DEFAULT_TRACK_COUNT = 20

RowT = TypeVar("RowT")


@dataclass
class PlaylistResult:
    playlist_id: str
    name: str
    track_count: int
    url: str


@dataclass
class MoodSummary:
    id: int
    name: str
    description: Optional[str]


@dataclass
class PlaylistSummary:
    id: int
    name: str
    description: Optional[str]
    track_count: Optional[int]
    is_public: bool
    spotify_playlist_id: str
    mood_name: Optional[str]

    @property
    def url(self) -> str:
        return playlist_url(self.spotify_playlist_id)


@dataclass
class AuthenticatedUser:
    id: str
    display_name: Optional[str]
    email: Optional[str]


def validate_track_count(track_count: int) -> None:
    if not MIN_TRACK_COUNT <= track_count <= MAX_TRACK_COUNT:
        raise ValueError(
            f"trackCount must be between {MIN_TRACK_COUNT} and {MAX_TRACK_COUNT}, got {track_count}"
        )


def placeholder_ratings(rng: random.Random) -> Tuple[int, int]:
    """
    Independent uniform integers in [1, 10] for (energy_level, focus_rating).

    They carry no information about the track; rows get
    rating_source="placeholder" so nobody mistakes them for audio analysis.
    """
    return rng.randint(1, 10), rng.randint(1, 10)


class PlaylistWorkflow:
    def __init__(
        self,
        spotify: SpotifyClient,
        sessions: sessionmaker[Session],
        tokens: Optional[TokenManager] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._spotify = spotify
        self._sessions = sessions
        self._tokens = tokens if tokens is not None else TokenManager(spotify)
        self._rng = rng or random.Random()

    # --------------------------------------------------------------------- #
    # Authentication
    # --------------------------------------------------------------------- #
    def authorization_url(self, state: Optional[str] = None) -> str:
        return self._spotify.build_authorization_url(state)

    def authenticate(self, code: str) -> AuthenticatedUser:
        """
        Exchange an authorization code and upsert the User keyed by Spotify id.

        Re-authenticating the same account updates the existing row; the new
        tokens win, except that a grant without a refresh token keeps the
        stored one.
        """
        grant = self._spotify.exchange_code(code)
        profile = self._spotify.fetch_profile(grant.access_token)
        expires_at = self._tokens.now() + timedelta(seconds=grant.expires_in)

        with session_scope(self._sessions) as session:
            user = self._upsert_user(session, profile, grant, expires_at)
            logger.info(f"Authenticated Spotify user {profile.external_id} as local user {user.id}")
            return AuthenticatedUser(
                id=user.id,
                display_name=user.display_name,
                email=user.email,
            )

    def _upsert_user(self, session: Session, profile: SpotifyProfile, grant: TokenGrant, expires_at) -> User:
        stmt = select(User).where(User.spotify_id == profile.external_id)

        def apply(user: User) -> None:
            user.email = profile.email
            user.display_name = profile.display_name
            user.access_token = grant.access_token
            user.token_expires_at = expires_at
            if grant.refresh_token is not None:
                user.refresh_token = grant.refresh_token

        user = session.scalar(stmt)
        if user is None:
            user = User(spotify_id=profile.external_id)
            apply(user)
            session.add(user)
            try:
                session.commit()
                return user
            except IntegrityError:
                # Another request inserted the same account first; update theirs.
                session.rollback()
                logger.info(f"Concurrent insert for Spotify user {profile.external_id}, updating instead")
                user = session.scalar(stmt)
                if user is None:
                    raise

        apply(user)
        session.commit()
        return user

    def _authenticated_user(self, session: Session, user_id: str) -> User:
        user = session.get(User, user_id)
        if user is None or not user.access_token or not user.spotify_id:
            logger.warning(f"User {user_id} not found or not authenticated with Spotify")
            raise UserNotAuthenticated("User not found or not authenticated with Spotify")
        return user

    # --------------------------------------------------------------------- #
    # Playlist assembly
    # --------------------------------------------------------------------- #
    def generate_playlist(
        self,
        user_id: str,
        mood: str,
        playlist_name: str,
        *,
        track_count: int = DEFAULT_TRACK_COUNT,
        is_public: bool = False,
    ) -> PlaylistResult:
        validate_track_count(track_count)
        logger.info(
            f"Generating playlist: user={user_id}, mood={mood!r}, name={playlist_name!r}, "
            f"tracks={track_count}, public={is_public}"
        )

        with session_scope(self._sessions) as session:
            user = self._authenticated_user(session, user_id)
            access_token = self._tokens.ensure_valid_token(session, user)

            query = search_query_for(mood)
            tracks = self._spotify.search_tracks(access_token, query, limit=track_count)
            if not tracks:
                logger.warning(f"No tracks found for mood {mood!r} (query={query!r})")
                raise NoTracksFound(mood, query)

            description = playlist_description(mood)
            playlist = self._spotify.create_playlist(
                access_token,
                user.spotify_id,
                playlist_name,
                description,
                is_public=is_public,
            )
            self._spotify.add_tracks(access_token, playlist.id, [t.uri for t in tracks])

            mood_row, _ = self._get_or_create(
                session, Mood, {"name": mood}, {"description": mood_description(mood)}
            )

            session.add(
                SpotifyPlaylist(
                    user_id=user.id,
                    spotify_playlist_id=playlist.id,
                    name=playlist_name,
                    description=description,
                    mood_id=mood_row.id,
                    track_count=len(tracks),
                    is_public=is_public,
                )
            )
            session.commit()

            created = sum(1 for track in tracks if self._cache_track(session, track))
            logger.info(
                f"Playlist {playlist.id} created with {len(tracks)} tracks ({created} new local tracks)"
            )

            return PlaylistResult(
                playlist_id=playlist.id,
                name=playlist_name,
                track_count=len(tracks),
                url=playlist.url,
            )

    def _cache_track(self, session: Session, track: SpotifyTrack) -> bool:
        energy_level, focus_rating = placeholder_ratings(self._rng)
        _, created = self._get_or_create(
            session,
            Track,
            {"spotify_id": track.id},
            {
                "title": track.name,
                "artist": track.artist_line,
                "album": track.album,
                "duration_seconds": track.duration_ms // 1000 if track.duration_ms is not None else None,
                "energy_level": energy_level,
                "focus_rating": focus_rating,
                "rating_source": PLACEHOLDER_RATING_SOURCE,
            },
        )
        return created

    def _get_or_create(
        self,
        session: Session,
        model: Type[RowT],
        lookup: Dict[str, Any],
        defaults: Dict[str, Any],
    ) -> Tuple[RowT, bool]:
        """
        Select by the unique ``lookup`` columns, insert when missing.

        Losing an insert race to a concurrent writer is not an error: the
        unique-constraint violation is rolled back and the winner's row
        returned.
        """
        stmt = select(model).filter_by(**lookup)
        row = session.scalar(stmt)
        if row is not None:
            return row, False

        row = model(**lookup, **defaults)
        session.add(row)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info(f"Lost insert race for {model.__name__} {lookup}, reusing existing row")
            row = session.scalar(stmt)
            if row is None:
                raise
            return row, False
        return row, True

    # --------------------------------------------------------------------- #
    # Audio features
    # --------------------------------------------------------------------- #
    def store_audio_features(self, user_id: str, track_ids: List[str]) -> int:
        """
        Fetch audio features for locally cached tracks and store them on the
        Track rows. Placeholder ratings are left untouched.

        Returns the number of rows updated. IDs without a local Track row
        are not sent upstream.
        """
        with session_scope(self._sessions) as session:
            user = self._authenticated_user(session, user_id)
            access_token = self._tokens.ensure_valid_token(session, user)

            rows = {
                t.spotify_id: t
                for t in session.scalars(select(Track).where(Track.spotify_id.in_(track_ids))).all()
            }
            if not rows:
                logger.info("No cached tracks to fetch audio features for")
                return 0

            features = self._spotify.get_audio_features(access_token, list(rows))
            stored = 0
            for spotify_id, data in features.items():
                if spotify_id in rows:
                    rows[spotify_id].audio_features = data
                    stored += 1
            session.commit()
            logger.info(f"Stored audio features for {stored}/{len(rows)} cached tracks")
            return stored

    def close(self) -> None:
        self._spotify.close()

    # --------------------------------------------------------------------- #
    # Read-only queries
    # --------------------------------------------------------------------- #
    def list_moods(self) -> List[MoodSummary]:
        with session_scope(self._sessions) as session:
            rows = session.scalars(select(Mood).order_by(Mood.id)).all()
            return [MoodSummary(id=m.id, name=m.name, description=m.description) for m in rows]

    def list_user_playlists(self, user_id: str) -> List[PlaylistSummary]:
        stmt = (
            select(SpotifyPlaylist, Mood.name)
            .outerjoin(Mood, SpotifyPlaylist.mood_id == Mood.id)
            .where(SpotifyPlaylist.user_id == user_id)
            .order_by(SpotifyPlaylist.id)
        )
        with session_scope(self._sessions) as session:
            return [
                PlaylistSummary(
                    id=playlist.id,
                    name=playlist.name,
                    description=playlist.description,
                    track_count=playlist.track_count,
                    is_public=playlist.is_public,
                    spotify_playlist_id=playlist.spotify_playlist_id,
                    mood_name=mood_name,
                )
                for playlist, mood_name in session.execute(stmt).all()
            ]

    def stats(self) -> Tuple[int, int]:
        """Return (mood count, track count)."""
        with session_scope(self._sessions) as session:
            moods = session.scalar(select(func.count()).select_from(Mood)) or 0
            tracks = session.scalar(select(func.count()).select_from(Track)) or 0
            return moods, tracks


__all__ = [
    "AuthenticatedUser",
    "DEFAULT_TRACK_COUNT",
    "MAX_TRACK_COUNT",
    "MIN_TRACK_COUNT",
    "MoodSummary",
    "PlaylistResult",
    "PlaylistSummary",
    "PlaylistWorkflow",
    "placeholder_ratings",
    "validate_track_count",
]
