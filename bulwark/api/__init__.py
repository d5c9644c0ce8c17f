"""Bulwark API routes."""

from bulwark.api.frontend import router as frontend_router
from bulwark.api.router import api_router

__all__ = ["api_router", "frontend_router"]
