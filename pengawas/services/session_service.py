"""Session helpers (issue bearer tokens, resolve them back to a user id)."""
from __future__ import annotations

import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple


class SessionService:
    """In-memory token registry. Tokens do not survive a restart."""

    def __init__(
        self,
        ttl_seconds: int,
        *,
        clock: Callable[[], float] = time.time,
        purge_every: int = 100,
    ) -> None:
        self.ttl_seconds = max(60, int(ttl_seconds))
        self._clock = clock
        self._purge_every = max(1, int(purge_every))
        self._issued = 0
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._issued += 1
            # expired tokens nobody resolves again would otherwise stay forever
            if self._issued % self._purge_every == 0:
                self._drop_expired(now)
            self._tokens[token] = (user_id, now + self.ttl_seconds)
        return token

    def resolve(self, token: str | None) -> Optional[str]:
        """Return the user id bound to ``token``; expired tokens are dropped."""
        if not token:
            return None
        now = self._clock()
        with self._lock:
            entry = self._tokens.get(token)
            if not entry:
                return None
            user_id, expires_at = entry
            if expires_at < now:
                del self._tokens[token]
                return None
            return user_id

    def revoke(self, token: str | None) -> None:
        if not token:
            return
        with self._lock:
            self._tokens.pop(token, None)

    def purge_expired(self) -> int:
        with self._lock:
            return self._drop_expired(self._clock())

    def _drop_expired(self, now: float) -> int:
        expired = [token for token, (_, expires_at) in self._tokens.items() if expires_at < now]
        for token in expired:
            del self._tokens[token]
        return len(expired)
