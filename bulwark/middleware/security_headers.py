"""Security headers applied to every response."""

import re

from starlette.responses import Response

# Prefixes whose responses contain per-user data and must not sit in shared caches
AUTHENTICATED_API_PREFIXES = ("/api/users", "/api/admin")

STATIC_ASSET_PATTERN = re.compile(r"\.(js|css|png|jpg|jpeg|gif|ico|svg|woff|woff2|ttf|eot)$")

IDENTIFYING_HEADERS = ("X-Powered-By", "Server")


def build_csp(production: bool) -> str:
    """Content-Security-Policy for HTML documents.

    Development allows inline and eval'd scripts for unbundled dev tooling.
    """
    script_src = "script-src 'self'" if production else "script-src 'self' 'unsafe-inline' 'unsafe-eval'"
    style_src = "style-src 'self'" if production else "style-src 'self' 'unsafe-inline'"
    directives = [
        "default-src 'self'",
        script_src,
        style_src,
        "img-src 'self' data: https:",
        "font-src 'self'",
        "connect-src 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]
    return "; ".join(directives)


def apply_security_headers(response: Response, path: str, production: bool) -> Response:
    """Amend ``response`` headers in place based on content type and path."""
    headers = response.headers

    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["X-XSS-Protection"] = "1; mode=block"
    headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

    for header in IDENTIFYING_HEADERS:
        if header in headers:
            del headers[header]

    content_type = headers.get("Content-Type", "")
    if "text/html" in content_type:
        headers["Content-Security-Policy"] = build_csp(production)

    if production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

    if path.startswith("/api/"):
        if path.startswith(AUTHENTICATED_API_PREFIXES):
            headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
        else:
            headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        headers["Pragma"] = "no-cache"
        headers["Expires"] = "0"
    elif STATIC_ASSET_PATTERN.search(path):
        headers["Cache-Control"] = "public, max-age=31536000, immutable"
    elif path == "/manifest.json":
        headers["Cache-Control"] = "public, max-age=3600"

    return response
