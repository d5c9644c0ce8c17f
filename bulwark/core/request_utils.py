"""Request utility functions for handling common request operations."""

import ipaddress
import logging

from starlette.requests import Request

logger = logging.getLogger(__name__)

LOOPBACK_FALLBACK = "127.0.0.1"


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_identifier(request: Request) -> str:
    """Derive the rate-limit key for a request.

    Uses the first entry of X-Forwarded-For, falling back to loopback.
    The header is client-controlled: this is only sound behind a reverse
    proxy that overwrites it.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
        if client_ip:
            if not _is_valid_ip(client_ip):
                logger.debug(f"Non-IP value in X-Forwarded-For used as identifier: {client_ip!r}")
            return client_ip
    return LOOPBACK_FALLBACK


def get_bearer_token(request: Request) -> str | None:
    """Extract a bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None
