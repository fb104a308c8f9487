import hmac
import logging
import secrets
import time
from typing import Callable, Optional, Protocol

from fastapi import Request

from idealcar.exceptions import Unauthorized

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Where issued admin tokens live. Swap for a shared store when running
    more than one instance."""

    def put(self, token: str, expires_at: float) -> None: ...

    def expires_at(self, token: str) -> Optional[float]: ...

    def discard(self, token: str) -> None: ...


class InMemorySessionStore:
    def __init__(self):
        self._tokens: dict[str, float] = {}

    def put(self, token: str, expires_at: float) -> None:
        self._tokens[token] = expires_at

    def expires_at(self, token: str) -> Optional[float]:
        return self._tokens.get(token)

    def discard(self, token: str) -> None:
        self._tokens.pop(token, None)

    def __len__(self):
        return len(self._tokens)


class AdminSessionGuard:
    """Shared-password login issuing opaque, time-limited bearer tokens.

    Expiry is checked when a token is presented, so nothing has to run in
    the background and a restarted process with a persistent store still
    honours the original deadline.
    """

    def __init__(self, password: str, ttl_seconds: int, store: SessionStore | None = None,
                 clock: Callable[[], float] = time.time):
        self.password = password
        self.ttl_seconds = ttl_seconds
        self.store = store if store is not None else InMemorySessionStore()
        self.clock = clock

    def check_password(self, candidate: str) -> bool:
        return hmac.compare_digest(candidate.encode("utf-8"), self.password.encode("utf-8"))

    def issue(self) -> str:
        token = secrets.token_hex(32)
        self.store.put(token, self.clock() + self.ttl_seconds)
        return token

    def is_valid(self, token: str | None) -> bool:
        if not token:
            return False
        deadline = self.store.expires_at(token)
        if deadline is None:
            return False
        if self.clock() >= deadline:
            self.store.discard(token)
            logger.info("Admin token expired")
            return False
        return True

    def revoke(self, token: str) -> None:
        self.store.discard(token)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_admin(request: Request) -> str:
    """Dependency for admin routes; returns the presented token."""
    token = bearer_token(request)
    if token is None:
        raise Unauthorized("Authentication required")
    if not request.app.state.guard.is_valid(token):
        raise Unauthorized("Invalid or expired token")
    return token
