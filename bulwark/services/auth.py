"""Authentication service: password hashing and signed bearer tokens."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jwt.exceptions import PyJWTError
from jwt.utils import base64url_decode, base64url_encode
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

TOKEN_ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL_SECONDS = 60 * 60 * 24

Role = Literal["user", "admin"]


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    if not password:
        raise ValueError("Password cannot be empty")
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


async def hash_password_async(password: str) -> str:
    """Hash off the event loop; argon2 is deliberately slow."""
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, password_hash: str | None) -> bool:
    return await run_in_threadpool(verify_password, password, password_hash)


@dataclass(frozen=True)
class AuthContext:
    """Identity decoded from a verified bearer token for one request."""

    user_id: str
    email: str
    name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthContext | None":
        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            return None
        role = claims.get("role")
        return cls(
            user_id=user_id,
            email=str(claims.get("email", "")),
            name=str(claims.get("name", "")),
            role="admin" if role == "admin" else "user",
        )


class TokenAuthenticator:
    """Issues and verifies stateless HS256 bearer tokens.

    There is no server-side token store: expiry is the only way a token
    stops being valid.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, claims: dict[str, Any], now: float | None = None) -> str:
        """Sign ``claims`` plus ``iat`` and ``exp`` into a three-segment token."""
        issued_at = int(self._clock() if now is None else now)
        payload = {
            **claims,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def issue_for_user(self, user_id: str, email: str, name: str, role: str) -> str:
        return self.issue({"sub": user_id, "email": email, "name": name, "role": role})

    def verify(self, token: str) -> dict[str, Any] | None:
        """Return the token's claims, or None for any kind of invalid token.

        Failure reasons are logged but never returned, so callers cannot
        distinguish a forged token from an expired one.
        """
        if not isinstance(token, str) or token.count(".") != 2:
            logger.debug("Token rejected: malformed structure")
            return None

        signature = token.rsplit(".", 1)[1]
        if not _is_canonical_segment(signature):
            logger.debug("Token rejected: non-canonical signature encoding")
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_sub": False,
                    "verify_jti": False,
                },
            )
        except PyJWTError as e:
            logger.debug(f"Token rejected: {type(e).__name__}")
            return None

        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, int | float) or isinstance(exp, bool):
                logger.debug("Token rejected: non-numeric exp claim")
                return None
            if exp < self._clock():
                logger.debug("Token rejected: expired")
                return None

        return payload

    def authenticate(self, token: str | None) -> AuthContext | None:
        """Verify a bearer token and build the request's identity from it."""
        if not token:
            return None
        claims = self.verify(token)
        if claims is None:
            return None
        return AuthContext.from_claims(claims)


def _is_canonical_segment(segment: str) -> bool:
    """True when the segment is the exact base64url encoding of its bytes.

    base64url leaves spare bits in the final character; without this check
    two different signature strings can decode to the same digest.
    """
    if not segment:
        return False
    try:
        return base64url_encode(base64url_decode(segment)).decode("ascii") == segment
    except (ValueError, UnicodeError):
        return False
