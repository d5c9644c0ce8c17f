"""Fixed-window rate limiting for authentication endpoints."""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    """Requests seen in the current window for one identifier."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitConfig:
    """Window size and threshold for one limiter."""

    max_requests: int = 5
    window_seconds: float = 15 * 60
    message: str = "Too many requests, please try again later"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    headers: dict[str, str] = field(default_factory=dict)
    retry_after: int = 0


class RateLimitStore(Protocol):
    """identifier -> RateLimitEntry, with a sweep for expired windows."""

    def get(self, identifier: str) -> RateLimitEntry | None: ...

    def set(self, identifier: str, entry: RateLimitEntry) -> None: ...

    def delete(self, identifier: str) -> None: ...

    def sweep(self, now: float) -> int: ...


class InMemoryRateLimitStore:
    """Process-local store; RateLimiter holds the lock across read-modify-write."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, identifier: str) -> RateLimitEntry | None:
        return self._entries.get(identifier)

    def set(self, identifier: str, entry: RateLimitEntry) -> None:
        self._entries[identifier] = entry

    def delete(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    def sweep(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.reset_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """Fixed-window counter per client identifier.

    When a window's reset time passes, the entry is replaced with a fresh
    window (count=1) rather than decayed, so bursts straddling a window
    boundary are not smoothed.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
        enabled: bool = True,
        name: str = "default",
    ) -> None:
        self.config = config or RateLimitConfig()
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.enabled = enabled
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()

    def _limit_headers(self, remaining: int, reset_at: float) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.config.max_requests),
            "X-RateLimit-Remaining": str(max(0, remaining)),
            "X-RateLimit-Reset": str(math.ceil(reset_at)),
        }

    def _rejection(self, entry: RateLimitEntry, now: float) -> RateLimitDecision:
        retry_after = max(1, math.ceil(entry.reset_at - now))
        headers = self._limit_headers(0, entry.reset_at)
        headers["Retry-After"] = str(retry_after)
        return RateLimitDecision(allowed=False, headers=headers, retry_after=retry_after)

    def check(self, identifier: str) -> RateLimitDecision:
        """Count a request and decide whether it is allowed."""
        if not self.enabled:
            return RateLimitDecision(allowed=True)

        with self._lock:
            now = self._clock()
            entry = self.store.get(identifier)

            if entry is None or entry.reset_at < now:
                entry = RateLimitEntry(count=1, reset_at=now + self.config.window_seconds)
                self.store.set(identifier, entry)
                return RateLimitDecision(
                    allowed=True,
                    headers=self._limit_headers(self.config.max_requests - 1, entry.reset_at),
                )

            entry.count += 1
            self.store.set(identifier, entry)

            if entry.count > self.config.max_requests:
                logger.warning(
                    f"Rate limit '{self.name}' exceeded for {identifier}",
                    extra={"limiter": self.name, "client": identifier},
                )
                return self._rejection(entry, now)

            return RateLimitDecision(
                allowed=True,
                headers=self._limit_headers(self.config.max_requests - entry.count, entry.reset_at),
            )

    def blocked(self, identifier: str) -> RateLimitDecision:
        """Report whether the identifier is over its limit without counting."""
        if not self.enabled:
            return RateLimitDecision(allowed=True)

        with self._lock:
            now = self._clock()
            entry = self.store.get(identifier)
            if entry is None or entry.reset_at < now:
                return RateLimitDecision(allowed=True)
            if entry.count >= self.config.max_requests:
                return self._rejection(entry, now)
            return RateLimitDecision(
                allowed=True,
                headers=self._limit_headers(self.config.max_requests - entry.count, entry.reset_at),
            )

    def reset(self, identifier: str | None = None) -> None:
        """Reset counters for one identifier, or for everyone."""
        with self._lock:
            if identifier is not None:
                self.store.delete(identifier)
            else:
                self.store.sweep(math.inf)

    def cleanup_expired(self) -> int:
        """Remove windows whose reset time has passed."""
        with self._lock:
            removed = self.store.sweep(self._clock())
        if removed:
            logger.info(f"Cleaned up {removed} expired '{self.name}' rate limit entries")
        return removed


@dataclass
class RateLimiters:
    """The limiters one application instance uses."""

    auth: RateLimiter
    failed_login: RateLimiter

    def all(self) -> list[RateLimiter]:
        return [self.auth, self.failed_login]
