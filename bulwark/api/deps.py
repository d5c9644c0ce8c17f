"""Route guards and component accessors.

Components live on ``app.state`` so that each application instance owns
its own stores; nothing here is module-global.
"""

import logging

from fastapi import Depends, Request

from bulwark.core.config import Settings
from bulwark.core.errors import AuthenticationError, AuthorizationError, RateLimitError
from bulwark.core.request_utils import get_bearer_token, get_client_identifier
from bulwark.middleware.csrf import CsrfProtection
from bulwark.middleware.rate_limit import RateLimiters
from bulwark.repositories.base import UserRepository
from bulwark.services.auth import AuthContext, TokenAuthenticator

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_authenticator(request: Request) -> TokenAuthenticator:
    return request.app.state.token_authenticator


def get_csrf(request: Request) -> CsrfProtection:
    return request.app.state.csrf


def get_rate_limiters(request: Request) -> RateLimiters:
    return request.app.state.rate_limiters


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def auth_rate_limit(
    request: Request,
    limiters: RateLimiters = Depends(get_rate_limiters),
) -> str:
    """Count an authentication attempt; returns the client identifier."""
    identifier = get_client_identifier(request)
    decision = limiters.auth.check(identifier)
    if not decision.allowed:
        raise RateLimitError(limiters.auth.config.message, headers=decision.headers)
    return identifier


def require_user(
    request: Request,
    authenticator: TokenAuthenticator = Depends(get_token_authenticator),
) -> AuthContext:
    """Resolve the bearer token into an AuthContext or reject with 401."""
    token = get_bearer_token(request)
    if token is None:
        raise AuthenticationError("Unauthorized")

    context = authenticator.authenticate(token)
    if context is None:
        logger.warning(f"Invalid bearer token for {request.method} {request.url.path}")
        raise AuthenticationError("Invalid token")
    return context


def require_admin(context: AuthContext = Depends(require_user)) -> AuthContext:
    if not context.is_admin:
        logger.warning(
            f"Non-admin user {context.user_id} denied admin route",
            extra={"user_id": context.user_id, "reason": "not admin"},
        )
        raise AuthorizationError()
    return context
