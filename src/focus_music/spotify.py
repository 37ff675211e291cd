"""
Spotify integration layer for the Focus Music Tool.

Scope:
- Authorization-code OAuth flow (authorize URL, code exchange, refresh).
- User-scoped Web API calls: profile, track search, playlist creation,
  track insertion and audio features.

Every call is single-shot: no retries, no caching. Idempotence, where it
exists, is Spotify's business.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlencode

import httpx

from .config import SpotifyConfig
from .errors import SpotifyError, UpstreamAPIError, UpstreamAuthError

logger = logging.getLogger(__name__)


SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"
SPOTIFY_PLAYLIST_WEB_URL = "https://open.spotify.com/playlist"

AUTH_SCOPES = (
    "user-read-private",
    "user-read-email",
    "playlist-modify-public",
    "playlist-modify-private",
)


@dataclass
class TokenGrant:
    access_token: str
    expires_in: int
    # None means Spotify did not rotate the refresh token.
    refresh_token: Optional[str] = None


@dataclass
class SpotifyProfile:
    external_id: str
    display_name: Optional[str]
    email: Optional[str]


@dataclass
class SpotifyTrack:
    id: str
    name: str
    artists: List[str]
    album: Optional[str]
    duration_ms: Optional[int]

    @property
    def uri(self) -> str:
        return f"spotify:track:{self.id}"

    @property
    def artist_line(self) -> str:
        return ", ".join(self.artists)


@dataclass
class SpotifyPlaylistRef:
    id: str
    name: str

    @property
    def url(self) -> str:
        return playlist_url(self.id)


def playlist_url(playlist_id: str) -> str:
    return f"{SPOTIFY_PLAYLIST_WEB_URL}/{playlist_id}"


def _status_text(resp: httpx.Response) -> str:
    reason = getattr(resp, "reason_phrase", "") or ""
    return f"{resp.status_code} {reason}".strip()


def _parse_track(item: dict) -> SpotifyTrack:
    return SpotifyTrack(
        id=item["id"],
        name=item.get("name") or "",
        artists=[a.get("name", "") for a in item.get("artists") or []],
        album=(item.get("album") or {}).get("name"),
        duration_ms=item.get("duration_ms"),
    )


class SpotifyClient:
    """
    Direct Spotify Web API client for user-level (authorization-code) flows.

    The client holds only configuration and an HTTP connection pool; tokens
    are always passed in by the caller.
    """

    def __init__(self, cfg: SpotifyConfig, *, http: Optional[httpx.Client] = None) -> None:
        self._cfg = cfg
        self._http = http if http is not None else httpx.Client(timeout=cfg.http_timeout)

    # --------------------------------------------------------------------- #
    # OAuth
    # --------------------------------------------------------------------- #
    def _ensure_credentials(self) -> None:
        if not self._cfg.client_id or not self._cfg.client_secret:
            logger.error("Spotify credentials missing: client_id or client_secret not set")
            raise UpstreamAuthError(
                "Spotify client ID/secret are missing. "
                "Set FOCUS_MUSIC_SPOTIFY_CLIENT_ID and FOCUS_MUSIC_SPOTIFY_CLIENT_SECRET."
            )

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """
        Build the authorization-code grant URL. ``state`` is passed through
        untouched and left out of the query string when not given.
        """
        params = {
            "response_type": "code",
            "client_id": self._cfg.client_id,
            "scope": " ".join(AUTH_SCOPES),
            "redirect_uri": self._cfg.redirect_uri,
        }
        if state:
            params["state"] = state
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    def _token_request(self, data: dict, action: str) -> TokenGrant:
        self._ensure_credentials()
        try:
            resp = self._http.post(
                SPOTIFY_TOKEN_URL,
                data=data,
                auth=(self._cfg.client_id, self._cfg.client_secret),
            )
        except httpx.HTTPError as exc:
            logger.error(f"Failed to contact Spotify token endpoint: {exc}")
            raise UpstreamAuthError(f"{action} failed: {exc}") from exc

        if not resp.is_success:
            logger.error(f"Spotify {action.lower()} failed: {resp.status_code} {resp.text}")
            raise UpstreamAuthError(
                f"{action} failed: {_status_text(resp)}", status_code=resp.status_code
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        if not access_token:
            logger.error("Spotify token response missing access_token")
            raise UpstreamAuthError(f"{action} failed: response missing access_token")

        return TokenGrant(
            access_token=access_token,
            expires_in=int(payload.get("expires_in", 3600)),
            refresh_token=payload.get("refresh_token") or None,
        )

    def exchange_code(self, code: str) -> TokenGrant:
        logger.info("Exchanging authorization code for tokens")
        return self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._cfg.redirect_uri,
            },
            "Token exchange",
        )

    def refresh(self, refresh_token: str) -> TokenGrant:
        logger.info("Refreshing Spotify access token")
        return self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            "Token refresh",
        )

    # --------------------------------------------------------------------- #
    # Low-level request helper
    # --------------------------------------------------------------------- #
    def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        error_cls: type[SpotifyError] = UpstreamAPIError,
        action: str,
        **kwargs,
    ) -> httpx.Response:
        url = f"{SPOTIFY_API_BASE_URL}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {access_token}"

        logger.debug(f"Spotify API request: {method} {path}")
        try:
            resp = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"HTTP error calling Spotify API {path}: {exc}")
            raise error_cls(f"{action}: {exc}") from exc

        if not resp.is_success:
            logger.error(f"Spotify API error {resp.status_code} on {path}: {resp.text}")
            raise error_cls(f"{action}: {_status_text(resp)}", status_code=resp.status_code)

        logger.debug(f"Spotify API request successful: {method} {path} -> {resp.status_code}")
        return resp

    # --------------------------------------------------------------------- #
    # Web API
    # --------------------------------------------------------------------- #
    def fetch_profile(self, access_token: str) -> SpotifyProfile:
        resp = self._request(
            "GET",
            "/me",
            access_token,
            error_cls=UpstreamAuthError,
            action="Failed to get user profile",
        )
        data = resp.json()
        external_id = data.get("id")
        if not external_id:
            logger.error("Spotify /me response missing user id")
            raise UpstreamAuthError("Failed to get user profile: response missing user id")
        return SpotifyProfile(
            external_id=external_id,
            display_name=data.get("display_name"),
            email=data.get("email"),
        )

    def search_tracks(self, access_token: str, query: str, *, limit: int = 20) -> List[SpotifyTrack]:
        """
        Search for tracks by free-text query. An empty list means "no matches",
        not a failure.
        """
        logger.info(f"Searching Spotify tracks: query={query!r}, limit={limit}")
        params = {
            "q": query,
            "type": "track",
            "limit": limit,
        }
        resp = self._request("GET", "/search", access_token, params=params, action="Search failed")
        items = (resp.json().get("tracks") or {}).get("items") or []
        tracks = [_parse_track(item) for item in items if item and item.get("id")]
        logger.debug(f"Spotify search returned {len(tracks)} tracks")
        return tracks

    def create_playlist(
        self,
        access_token: str,
        owner_id: str,
        name: str,
        description: str,
        *,
        is_public: bool = False,
    ) -> SpotifyPlaylistRef:
        logger.info(f"Creating Spotify playlist: owner={owner_id}, name={name!r}, public={is_public}")
        resp = self._request(
            "POST",
            f"/users/{owner_id}/playlists",
            access_token,
            json={"name": name, "description": description, "public": is_public},
            action="Failed to create playlist",
        )
        data = resp.json()
        return SpotifyPlaylistRef(
            id=data["id"],
            name=data.get("name") or name,
        )

    def add_tracks(self, access_token: str, playlist_id: str, track_uris: List[str]) -> None:
        logger.info(f"Adding {len(track_uris)} tracks to playlist: {playlist_id}")
        self._request(
            "POST",
            f"/playlists/{playlist_id}/tracks",
            access_token,
            json={"uris": track_uris},
            action="Failed to add tracks to playlist",
        )

    def get_audio_features(self, access_token: str, track_ids: List[str]) -> Dict[str, dict]:
        """
        Fetch audio features for a list of track IDs.

        Returns a mapping {track_id: features_dict}; tracks Spotify has no
        features for are left out.
        """
        result: Dict[str, dict] = {}

        # Spotify supports up to 100 IDs per audio-features request.
        for i in range(0, len(track_ids), 100):
            chunk = track_ids[i : i + 100]
            resp = self._request(
                "GET",
                "/audio-features",
                access_token,
                params={"ids": ",".join(chunk)},
                action="Failed to fetch audio features",
            )
            for features in resp.json().get("audio_features") or []:
                if features and features.get("id"):
                    result[features["id"]] = features

        logger.info(f"Audio features retrieved: {len(result)}/{len(track_ids)} tracks")
        return result

    def close(self) -> None:
        logger.debug("Closing SpotifyClient HTTP connection")
        self._http.close()


__all__ = [
    "AUTH_SCOPES",
    "SpotifyClient",
    "SpotifyPlaylistRef",
    "SpotifyProfile",
    "SpotifyTrack",
    "TokenGrant",
    "playlist_url",
]
