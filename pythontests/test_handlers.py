"""
Tests for the text replies shared by the MCP tools and the HTTP routes.
"""

from __future__ import annotations

from unittest.mock import Mock

from focus_music import handlers
from focus_music.errors import UpstreamAPIError, UpstreamAuthError


def test_auth_url_reply_embeds_url(workflow) -> None:
    reply = handlers.auth_url_reply(workflow, "s1")
    assert not reply.is_error
    assert reply.text.startswith("Please visit this URL to authenticate with Spotify: https://accounts.spotify.com")
    assert "state=s1" in reply.text


def test_authenticate_reply_success(workflow) -> None:
    reply = handlers.authenticate_reply(workflow, "abc")
    assert reply.text == "Successfully authenticated! User: Ann (a@x.com)"
    assert not reply.is_error


def test_authenticate_reply_failure(workflow, fake_spotify) -> None:
    fake_spotify.fail_on["exchange_code"] = UpstreamAuthError("Token exchange failed: 400 Bad Request")
    reply = handlers.authenticate_reply(workflow, "bad")
    assert reply.is_error
    assert reply.text == "Authentication failed: Token exchange failed: 400 Bad Request"


def test_generate_playlist_reply_success(workflow) -> None:
    user = workflow.authenticate("abc")
    reply = handlers.generate_playlist_reply(workflow, user.id, "calm", "Chill Set", 5, False)

    assert not reply.is_error
    assert '"Chill Set"' in reply.text
    assert "with 5 tracks!" in reply.text
    assert "Playlist URL: https://open.spotify.com/playlist/pl-1" in reply.text


def test_generate_playlist_reply_rejects_track_count_before_workflow() -> None:
    workflow = Mock()
    reply = handlers.generate_playlist_reply(workflow, "u", "calm", "X", 51)
    assert reply.is_error
    assert "between 1 and 50" in reply.text
    workflow.generate_playlist.assert_not_called()


def test_generate_playlist_reply_uses_workflow_bounds(monkeypatch) -> None:
    def reject(track_count: int) -> None:
        raise ValueError(f"no {track_count}")

    monkeypatch.setattr(handlers, "validate_track_count", reject)
    workflow = Mock()

    reply = handlers.generate_playlist_reply(workflow, "u", "calm", "X", 5)

    assert reply.is_error
    assert reply.text == "no 5"
    workflow.generate_playlist.assert_not_called()


def test_generate_playlist_reply_not_authenticated(workflow) -> None:
    reply = handlers.generate_playlist_reply(workflow, "missing", "calm", "X")
    assert reply.is_error
    assert reply.text == handlers.NOT_AUTHENTICATED_MESSAGE


def test_generate_playlist_reply_reauth_required(workflow, fake_spotify, add_user) -> None:
    user_id = add_user(refresh_token=None, expires_in=-1)
    reply = handlers.generate_playlist_reply(workflow, user_id, "calm", "X")
    assert reply.is_error
    assert "re-authenticate" in reply.text
    assert fake_spotify.calls == []


def test_generate_playlist_reply_no_tracks(workflow, fake_spotify, add_user) -> None:
    fake_spotify.tracks = []
    reply = handlers.generate_playlist_reply(workflow, add_user(), "rainy", "X")
    assert reply.is_error
    assert reply.text == "No tracks found for mood: rainy"


def test_generate_playlist_reply_generic_failure(workflow, fake_spotify, add_user) -> None:
    fake_spotify.fail_on["create_playlist"] = UpstreamAPIError("Failed to create playlist: 403 Forbidden")
    reply = handlers.generate_playlist_reply(workflow, add_user(), "calm", "X")
    assert reply.is_error
    assert reply.text == "Failed to create playlist: Failed to create playlist: 403 Forbidden"


def test_generate_playlist_reply_unexpected_exception_is_reported() -> None:
    workflow = Mock()
    workflow.generate_playlist.side_effect = RuntimeError("database is locked")
    reply = handlers.generate_playlist_reply(workflow, "u", "calm", "X")
    assert reply.is_error
    assert reply.text == "Failed to create playlist: database is locked"


def test_moods_reply_empty(workflow) -> None:
    reply = handlers.moods_reply(workflow)
    assert not reply.is_error
    assert "no moods available" in reply.text.lower()


def test_moods_reply_lists_moods(workflow, add_user) -> None:
    workflow.generate_playlist(add_user(), "calm", "Chill Set", track_count=1)
    reply = handlers.moods_reply(workflow)
    assert reply.text == "Available moods:\n- calm: calm music for enhanced focus and productivity"


def test_user_playlists_reply_empty(workflow) -> None:
    reply = handlers.user_playlists_reply(workflow, "nobody")
    assert not reply.is_error
    assert reply.text == handlers.NO_PLAYLISTS_MESSAGE


def test_user_playlists_reply_lists_playlists(workflow, add_user) -> None:
    user_id = add_user()
    workflow.generate_playlist(user_id, "calm", "Chill Set", track_count=3)
    reply = handlers.user_playlists_reply(workflow, user_id)
    assert reply.text == (
        "Your Spotify playlists:\n"
        "- Chill Set (3 tracks, calm) - https://open.spotify.com/playlist/pl-1"
    )
