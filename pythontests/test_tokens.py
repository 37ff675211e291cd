"""
Tests for the access-token lifecycle: Valid vs Expired, refresh persistence,
refresh-token rotation and the fail-closed ReauthRequired path.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from focus_music.db import as_utc
from focus_music.errors import ReauthRequired
from focus_music.models import User
from focus_music.spotify import TokenGrant
from focus_music.tokens import TokenManager


def test_valid_token_is_returned_without_refresh(sessions, tokens, fake_spotify, add_user) -> None:
    user_id = add_user(expires_in=60)
    with sessions() as session:
        user = session.get(User, user_id)
        assert tokens.ensure_valid_token(session, user) == "stored-access"
    assert fake_spotify.calls == []


def test_token_without_expiry_counts_as_valid(sessions, tokens, fake_spotify, add_user) -> None:
    user_id = add_user(expires_in=None)
    with sessions() as session:
        assert tokens.ensure_valid_token(session, session.get(User, user_id)) == "stored-access"
    assert fake_spotify.calls == []


def test_expiry_boundary_is_expired(sessions, tokens, clock, add_user) -> None:
    user_id = add_user(expires_in=0)
    with sessions() as session:
        user = session.get(User, user_id)
        assert tokens.is_expired(user, clock()) is True
        assert tokens.is_expired(user, clock() - timedelta(seconds=1)) is False


def test_expired_token_is_refreshed_and_persisted(sessions, tokens, fake_spotify, clock, add_user) -> None:
    user_id = add_user(expires_in=-10)

    with sessions() as session:
        token = tokens.ensure_valid_token(session, session.get(User, user_id))

    assert token == "access-refreshed"
    assert fake_spotify.calls == [("refresh", "stored-refresh")]

    with sessions() as session:
        user = session.get(User, user_id)
        assert user.access_token == "access-refreshed"
        assert as_utc(user.token_expires_at) == clock() + timedelta(seconds=3600)
        # Not rotated: the stored refresh token stays.
        assert user.refresh_token == "stored-refresh"


def test_rotated_refresh_token_is_stored(sessions, tokens, fake_spotify, add_user) -> None:
    fake_spotify.refresh_grant = TokenGrant(access_token="a2", refresh_token="rotated", expires_in=60)
    user_id = add_user(expires_in=-10)

    with sessions() as session:
        tokens.ensure_valid_token(session, session.get(User, user_id))

    with sessions() as session:
        assert session.get(User, user_id).refresh_token == "rotated"


def test_expired_without_refresh_token_requires_reauth(sessions, tokens, fake_spotify, add_user) -> None:
    user_id = add_user(refresh_token=None, expires_in=-10)

    with sessions() as session:
        with pytest.raises(ReauthRequired):
            tokens.ensure_valid_token(session, session.get(User, user_id))

    assert fake_spotify.calls == []


def test_waiting_request_reuses_token_refreshed_meanwhile(sessions, fake_spotify, clock, add_user) -> None:
    """
    A request holding a stale row re-reads it once it owns the refresh lock,
    so a refresh that already happened is not repeated.
    """
    tokens = TokenManager(fake_spotify, clock=clock)  # type: ignore[arg-type]
    user_id = add_user(expires_in=-10)

    stale_session = sessions()
    stale_user = stale_session.get(User, user_id)

    with sessions() as session:
        tokens.ensure_valid_token(session, session.get(User, user_id))

    assert tokens.ensure_valid_token(stale_session, stale_user) == "access-refreshed"
    assert fake_spotify.names() == ["refresh"]
    stale_session.close()
