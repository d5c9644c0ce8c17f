"""Middleware module for the Bulwark request-security pipeline."""

from bulwark.middleware.cors import CorsPolicy
from bulwark.middleware.csrf import CsrfProtection, InMemoryCsrfStore
from bulwark.middleware.rate_limit import RateLimitConfig, RateLimiter, RateLimiters
from bulwark.middleware.expiry_sweeper import expiry_sweep_loop
from bulwark.middleware.security_headers import apply_security_headers
from bulwark.middleware.security_pipeline import SecurityPipelineMiddleware

__all__ = [
    "CorsPolicy",
    "CsrfProtection",
    "InMemoryCsrfStore",
    "RateLimitConfig",
    "RateLimiter",
    "RateLimiters",
    "SecurityPipelineMiddleware",
    "apply_security_headers",
    "expiry_sweep_loop",
]
