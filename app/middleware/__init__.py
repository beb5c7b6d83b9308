"""
Middleware package for the Cloud Drive backend.

This package contains custom middleware components for the application.
"""

from app.middleware.request_context import RequestContextMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["RequestContextMiddleware", "SecurityHeadersMiddleware"]
