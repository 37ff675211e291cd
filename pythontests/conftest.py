from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from focus_music.config import DatabaseConfig
from focus_music.db import init_db, make_engine, make_session_factory
from focus_music.models import User
from focus_music.spotify import SpotifyPlaylistRef, SpotifyProfile, SpotifyTrack, TokenGrant
from focus_music.tokens import TokenManager
from focus_music.workflow import PlaylistWorkflow

T0 = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock the tests can move around."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_tracks(n: int, prefix: str = "trk") -> List[SpotifyTrack]:
    return [
        SpotifyTrack(
            id=f"{prefix}-{i}",
            name=f"Track {i}",
            artists=[f"Artist {i}", "Guest"],
            album=f"Album {i}",
            duration_ms=180_500 + i,
        )
        for i in range(1, n + 1)
    ]


class FakeSpotify:
    """
    Stand-in for SpotifyClient that records every call in order.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.tracks: List[SpotifyTrack] = make_tracks(5)
        self.grant = TokenGrant(access_token="access-1", refresh_token="refresh-1", expires_in=3600)
        self.refresh_grant = TokenGrant(access_token="access-refreshed", expires_in=3600)
        self.profile = SpotifyProfile(external_id="u1", display_name="Ann", email="a@x.com")
        self.playlist_id = "pl-1"
        self.audio_features: dict[str, dict] = {}
        self.before_search: Optional[Callable[[], None]] = None
        self.fail_on: dict[str, Exception] = {}

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        url = "https://accounts.spotify.com/authorize?response_type=code&client_id=test-client-id"
        return f"{url}&state={state}" if state else url

    def exchange_code(self, code: str) -> TokenGrant:
        self._record("exchange_code", code)
        return self.grant

    def refresh(self, refresh_token: str) -> TokenGrant:
        self._record("refresh", refresh_token)
        return self.refresh_grant

    def fetch_profile(self, access_token: str) -> SpotifyProfile:
        self._record("fetch_profile", access_token)
        return self.profile

    def search_tracks(self, access_token: str, query: str, *, limit: int = 20) -> List[SpotifyTrack]:
        if self.before_search is not None:
            self.before_search()
        self._record("search_tracks", access_token, query, limit)
        return self.tracks[:limit]

    def create_playlist(
        self, access_token: str, owner_id: str, name: str, description: str, *, is_public: bool = False
    ) -> SpotifyPlaylistRef:
        self._record("create_playlist", access_token, owner_id, name, description, is_public)
        return SpotifyPlaylistRef(id=self.playlist_id, name=name)

    def add_tracks(self, access_token: str, playlist_id: str, track_uris: List[str]) -> None:
        self._record("add_tracks", access_token, playlist_id, list(track_uris))

    def get_audio_features(self, access_token: str, track_ids: List[str]) -> dict:
        self._record("get_audio_features", access_token, list(track_ids))
        return {tid: f for tid, f in self.audio_features.items() if tid in track_ids}

    def close(self) -> None:
        return None


@pytest.fixture
def sessions():
    engine = make_engine(DatabaseConfig(url="sqlite://"))
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
def tokens(fake_spotify: FakeSpotify, clock: FixedClock) -> TokenManager:
    return TokenManager(fake_spotify, clock=clock)  # type: ignore[arg-type]


@pytest.fixture
def workflow(fake_spotify: FakeSpotify, sessions, tokens: TokenManager) -> PlaylistWorkflow:
    return PlaylistWorkflow(fake_spotify, sessions, tokens, rng=random.Random(7))  # type: ignore[arg-type]


@pytest.fixture
def add_user(sessions, clock: FixedClock):
    """Insert a User row and return its id."""

    def _add(
        *,
        spotify_id: str = "u1",
        access_token: Optional[str] = "stored-access",
        refresh_token: Optional[str] = "stored-refresh",
        expires_in: Optional[int] = 3600,
    ) -> str:
        with sessions() as session:
            user = User(
                spotify_id=spotify_id,
                display_name="Ann",
                email="a@x.com",
                access_token=access_token,
                refresh_token=refresh_token,
                token_expires_at=clock() + timedelta(seconds=expires_in) if expires_in is not None else None,
            )
            session.add(user)
            session.commit()
            return user.id

    return _add
