"""Bulwark - user management API with a hardened request-security pipeline."""

__version__ = "1.0.0"
