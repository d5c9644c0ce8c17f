"""CSRF protection using the double-submit cookie pattern.

A login or registration issues two independent secrets: the *token* goes
back in the response body and must be echoed in the ``X-CSRF-Token``
header; the *cookie* is set HttpOnly and is the lookup key in the store.
A cross-site page can make the browser send the cookie but cannot read the
token to echo it.

Limitation: entries are not bound to the bearer token's subject, so any
live (cookie, token) pair passes for any authenticated session.
"""

import hmac
import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "X-CSRF-Token"
DEFAULT_CSRF_TTL_SECONDS = 60 * 60 * 24

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# Exact-path matches only. A prefix match here would silently exempt every
# route that happens to share the prefix.
CSRF_EXEMPT_PATHS = frozenset(
    {
        "/api/auth/login",
        "/api/auth/register",
        "/api/health",
    }
)


@dataclass(frozen=True)
class CsrfEntry:
    token: str
    expires_at: float


@dataclass(frozen=True)
class CsrfPair:
    """Freshly issued secrets: ``token`` for the body, ``cookie`` for Set-Cookie."""

    token: str
    cookie: str


@dataclass(frozen=True)
class CsrfDecision:
    allowed: bool
    reason: str = ""


class CsrfStore(Protocol):
    """Mapping of cookie value -> CsrfEntry.

    A multi-instance deployment needs an implementation over a shared
    key-value store.
    """

    def get(self, cookie: str) -> CsrfEntry | None: ...

    def set(self, cookie: str, entry: CsrfEntry) -> None: ...

    def delete(self, cookie: str) -> None: ...

    def sweep(self, now: float) -> int: ...


class InMemoryCsrfStore:
    """Process-local CSRF store (thread-safe)."""

    def __init__(self) -> None:
        self._entries: dict[str, CsrfEntry] = {}
        self._lock = threading.Lock()

    def get(self, cookie: str) -> CsrfEntry | None:
        with self._lock:
            return self._entries.get(cookie)

    def set(self, cookie: str, entry: CsrfEntry) -> None:
        with self._lock:
            self._entries[cookie] = entry

    def delete(self, cookie: str) -> None:
        with self._lock:
            self._entries.pop(cookie, None)

    def sweep(self, now: float) -> int:
        with self._lock:
            expired = [cookie for cookie, entry in self._entries.items() if entry.expires_at < now]
            for cookie in expired:
                del self._entries[cookie]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CsrfProtection:
    """Issues, validates and revokes CSRF token pairs."""

    def __init__(
        self,
        store: CsrfStore | None = None,
        ttl_seconds: int = DEFAULT_CSRF_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        exempt_paths: frozenset[str] = CSRF_EXEMPT_PATHS,
    ) -> None:
        self.store = store if store is not None else InMemoryCsrfStore()
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.exempt_paths = exempt_paths

    def issue(self) -> CsrfPair:
        """Generate and store a new pair; expired entries are swept as a side effect."""
        token = secrets.token_hex(32)
        cookie = secrets.token_hex(32)
        now = self._clock()
        self.store.set(cookie, CsrfEntry(token=token, expires_at=now + self.ttl_seconds))

        removed = self.store.sweep(now)
        if removed:
            logger.debug(f"Swept {removed} expired CSRF entries")

        return CsrfPair(token=token, cookie=cookie)

    def cleanup_expired(self) -> int:
        return self.store.sweep(self._clock())

    def requires_protection(self, method: str, path: str) -> bool:
        if method.upper() in SAFE_METHODS:
            return False
        if path in self.exempt_paths:
            return False
        return True

    def validate(self, cookie: str | None, token: str | None) -> bool:
        """Check a (cookie, token) pair against the store."""
        if not cookie or not token:
            return False

        entry = self.store.get(cookie)
        if entry is None:
            return False

        if entry.expires_at < self._clock():
            self.store.delete(cookie)
            return False

        return hmac.compare_digest(entry.token.encode(), token.encode())

    def enforce(
        self,
        method: str,
        path: str,
        cookie: str | None,
        header_token: str | None,
    ) -> CsrfDecision:
        """Decide whether a request may proceed.

        ``cookie`` is the already-parsed ``csrf-token`` value, as read from
        ``request.cookies``.
        """
        if not self.requires_protection(method, path):
            return CsrfDecision(allowed=True)

        if not cookie:
            return CsrfDecision(allowed=False, reason="missing cookie")
        if not header_token:
            return CsrfDecision(allowed=False, reason="missing header")
        if not self.validate(cookie, header_token):
            return CsrfDecision(allowed=False, reason="unknown, expired or mismatched token")
        return CsrfDecision(allowed=True)

    def revoke(self, cookie: str) -> None:
        self.store.delete(cookie)


def csrf_cookie_header(cookie: str, max_age: int = DEFAULT_CSRF_TTL_SECONDS) -> str:
    """Set-Cookie value carrying the CSRF store key."""
    return f"{CSRF_COOKIE_NAME}={cookie}; HttpOnly; SameSite=Strict; Path=/; Max-Age={max_age}"


def clear_csrf_cookie_header() -> str:
    return f"{CSRF_COOKIE_NAME}=; HttpOnly; SameSite=Strict; Path=/; Max-Age=0"
