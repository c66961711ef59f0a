"""Single-use request tokens and capability names."""

from __future__ import annotations

import logging
import secrets
import threading
import time

logger = logging.getLogger(__name__)

CAP_UPLOAD_FILES = "upload_files"
CAP_MANAGE_OPTIONS = "manage_options"

ACTION_GENERATE = "ai_generate_alt"

_TOKEN_TTL_SECONDS = 12 * 3600


class TokenRegistry:
    """Issues tokens bound to an (action, user) pair; each verifies once."""

    def __init__(self, ttl: float = _TOKEN_TTL_SECONDS) -> None:
        self._ttl = ttl
        self._tokens: dict[str, tuple[str, str, float]] = {}
        self._lock = threading.Lock()

    def issue(self, action: str, user_id: str) -> str:
        token = secrets.token_urlsafe(24)
        with self._lock:
            self._purge_expired()
            self._tokens[token] = (action, user_id, time.monotonic() + self._ttl)
        return token

    def verify(self, token: str, action: str, user_id: str) -> bool:
        """Consume *token*; True only if it was issued for this action and user."""
        if not token:
            return False
        with self._lock:
            entry = self._tokens.pop(token, None)
        if entry is None:
            logger.debug("Unknown or reused token | action=%s user_id=%s", action, user_id)
            return False
        bound_action, bound_user, expires = entry
        if time.monotonic() > expires:
            logger.debug("Expired token | action=%s user_id=%s", action, user_id)
            return False
        return bound_action == action and bound_user == user_id

    def _purge_expired(self) -> None:
        now = time.monotonic()
        for token in [t for t, (_, _, exp) in self._tokens.items() if exp < now]:
            del self._tokens[token]
