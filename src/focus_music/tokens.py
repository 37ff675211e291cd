"""
Access-token lifecycle for stored Spotify users.

A user's token is either Valid (now < token_expires_at) or Expired
(now >= token_expires_at). Expiry is evaluated lazily on every use; the only
transition this module performs is Expired -> Valid through a refresh.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from .db import as_utc, utc_now
from .errors import ReauthRequired, UserNotAuthenticated
from .models import User
from .spotify import SpotifyClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class TokenManager:
    """
    Hands out usable access tokens, refreshing expired ones first.

    Refreshes for one user are serialized with a per-user lock, and the row is
    re-read once the lock is held: a request that waited behind a refresh
    reuses the token the first one stored instead of refreshing again. This
    only covers requests served by the same process.
    """

    def __init__(self, spotify: SpotifyClient, *, clock: Clock = utc_now) -> None:
        self._spotify = spotify
        self._clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def is_expired(self, user: User, now: Optional[datetime] = None) -> bool:
        expires_at = as_utc(user.token_expires_at)
        if expires_at is None:
            return False
        return (now or self.now()) >= expires_at

    def ensure_valid_token(self, session: Session, user: User) -> str:
        if not user.access_token:
            raise UserNotAuthenticated(f"User {user.id} has no access token on record")

        if not self.is_expired(user):
            logger.debug(f"Using stored access token for {user.id}")
            return user.access_token

        with self._lock_for(user.id):
            session.refresh(user)
            if not self.is_expired(user):
                logger.info(f"Access token for {user.id} was refreshed by a concurrent request")
                return user.access_token  # type: ignore[return-value]

            if not user.refresh_token:
                logger.warning(f"Access token expired for {user.id} and no refresh token on record")
                raise ReauthRequired(
                    "Access token expired and no refresh token available. Please re-authenticate."
                )

            logger.info(f"Refreshing expired access token for {user.id}")
            grant = self._spotify.refresh(user.refresh_token)

            user.access_token = grant.access_token
            user.token_expires_at = self.now() + timedelta(seconds=grant.expires_in)
            if grant.refresh_token:
                user.refresh_token = grant.refresh_token
            session.commit()

            logger.info(f"Access token refreshed for {user.id} (expires in {grant.expires_in}s)")
            return grant.access_token


__all__ = ["Clock", "TokenManager"]
