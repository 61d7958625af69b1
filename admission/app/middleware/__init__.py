"""Middleware package for the admission engine."""

from admission.app.middleware.rate_limit import RateLimitMiddleware, get_identity

__all__ = [
    "RateLimitMiddleware",
    "get_identity",
]
