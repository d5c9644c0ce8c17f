"""Bulwark services."""

from bulwark.services.auth import AuthContext, TokenAuthenticator, hash_password, verify_password

__all__ = [
    "AuthContext",
    "TokenAuthenticator",
    "hash_password",
    "verify_password",
]
