"""
Security Headers Middleware for the Cloud Drive backend.

Adds security headers to every HTTP response. Headers a route already set
(the streamed file endpoint sets its own Content-Security-Policy and caching)
are left untouched.

Headers Added:
- X-Content-Type-Options: nosniff
- X-Frame-Options: DENY
- Strict-Transport-Security: max-age=31536000; includeSubDomains (HTTPS only)
- Content-Security-Policy: default-src 'none'; frame-ancestors 'none'
- Referrer-Policy: strict-origin-when-cross-origin
- Cache-Control: no-store on authenticated API paths
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Paths whose responses carry per-user data and must not be cached
SENSITIVE_PATH_PREFIXES = ("/auth/", "/api/", "/users/")

# Publicly cacheable file content, served with its own cache directive
PUBLIC_STREAM_PREFIX = "/api/v1/files/web/"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all HTTP responses.

    This middleware follows OWASP recommendations for secure headers configuration.
    """

    def __init__(
        self,
        app: ASGIApp,
        enable_hsts: bool = False,
        csp_policy: str | None = None,
    ):
        """
        Initialize the security headers middleware.

        Args:
            app: The ASGI application
            enable_hsts: Whether to send Strict-Transport-Security
            csp_policy: Custom CSP policy; the API serves no documents of its own,
                so the default forbids everything
        """
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.csp_policy = csp_policy or "default-src 'none'; frame-ancestors 'none'"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        headers = response.headers

        # Prevent MIME sniffing away from the declared content-type
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Content-Security-Policy", self.csp_policy)
        headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")

        if self.enable_hsts:
            headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )

        path = request.url.path
        if path.startswith(SENSITIVE_PATH_PREFIXES) and not path.startswith(
            PUBLIC_STREAM_PREFIX
        ):
            headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
            headers["Pragma"] = "no-cache"

        return response
