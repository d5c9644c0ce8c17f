"""Request-security pipeline.

Every request passes through the same fixed sequence:

1. CORS preflight short-circuit for ``OPTIONS`` on API paths
2. CSRF enforcement for mutating API requests
3. route dispatch (rate limit and auth guards run as route dependencies)
4. CORS decoration for API responses, security headers for all responses

The check order matters: preflights must never hit CSRF or auth, and
forged requests must be rejected before any handler runs.
"""

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from bulwark.core.errors import CsrfError, error_response, internal_error_response
from bulwark.middleware.cors import CorsPolicy
from bulwark.middleware.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CsrfProtection
from bulwark.middleware.security_headers import apply_security_headers

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def is_api_path(path: str) -> bool:
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


class SecurityPipelineMiddleware(BaseHTTPMiddleware):
    """Orchestrates CORS, CSRF, error containment and response hardening."""

    def __init__(
        self,
        app: ASGIApp,
        cors: CorsPolicy,
        csrf: CsrfProtection,
        production: bool,
    ) -> None:
        super().__init__(app)
        self.cors = cors
        self.csrf = csrf
        self.production = production

    def _finalize(self, response: Response, path: str, origin: str | None) -> Response:
        if is_api_path(path):
            self.cors.apply(response, origin)
        return apply_security_headers(response, path, self.production)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        origin = request.headers.get("Origin")
        api = is_api_path(path)

        if api and request.method == "OPTIONS":
            preflight = self.cors.preflight(origin)
            return apply_security_headers(preflight, path, self.production)

        if api:
            decision = self.csrf.enforce(
                request.method,
                path,
                request.cookies.get(CSRF_COOKIE_NAME),
                request.headers.get(CSRF_HEADER_NAME),
            )
            if not decision.allowed:
                logger.warning(
                    f"CSRF rejected {request.method} {path}: {decision.reason}",
                    extra={"method": request.method, "path": path, "reason": decision.reason},
                )
                return self._finalize(error_response(CsrfError()), path, origin)

        try:
            response = await call_next(request)
        except Exception:
            # Details go to the log only; the body stays generic
            logger.exception(f"Unhandled error during {request.method} {path}")
            response = internal_error_response()

        return self._finalize(response, path, origin)
