"""CORS policy for API routes.

Credentials are always allowed, so Access-Control-Allow-Origin is set to
the literal request origin and never to ``*``.
"""

from starlette.responses import Response

from bulwark.middleware.csrf import CSRF_HEADER_NAME

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", CSRF_HEADER_NAME]
PREFLIGHT_MAX_AGE = 86400


class CorsPolicy:
    """Origin allow-list evaluation and CORS header synthesis.

    Outside production any non-empty origin is reflected, which keeps local
    front-end dev servers on other ports working.
    """

    def __init__(self, allowed_origins: list[str], production: bool) -> None:
        self.allowed_origins = frozenset(allowed_origins)
        self.production = production

    def decide(self, origin: str | None) -> bool:
        if not origin or origin in ("null", "*"):
            return False
        if self.production:
            return origin in self.allowed_origins
        return True

    def _apply_origin(self, response: Response, origin: str | None) -> None:
        if self.decide(origin):
            response.headers["Access-Control-Allow-Origin"] = origin  # type: ignore[assignment]
            response.headers["Access-Control-Allow-Credentials"] = "true"
        else:
            # Never let a handler-set wildcard or foreign origin through
            for header in ("Access-Control-Allow-Origin", "Access-Control-Allow-Credentials"):
                if header in response.headers:
                    del response.headers[header]
        _add_vary_origin(response)

    def preflight(self, origin: str | None) -> Response:
        """Answer an OPTIONS request; always 204 with an empty body."""
        response = Response(status_code=204)
        self._apply_origin(response, origin)
        response.headers["Access-Control-Allow-Methods"] = ", ".join(ALLOWED_METHODS)
        response.headers["Access-Control-Allow-Headers"] = ", ".join(ALLOWED_HEADERS)
        response.headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
        return response

    def apply(self, response: Response, origin: str | None) -> Response:
        """Decorate an actual API response."""
        self._apply_origin(response, origin)
        return response


def _add_vary_origin(response: Response) -> None:
    existing = response.headers.get("Vary")
    if not existing:
        response.headers["Vary"] = "Origin"
        return
    values = [v.strip() for v in existing.split(",") if v.strip()]
    if "origin" not in {v.lower() for v in values}:
        response.headers["Vary"] = ", ".join([*values, "Origin"])
