"""
Middleware
Custom middleware for FastAPI application.
"""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
