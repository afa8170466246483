"""
HTTP Infrastructure - shared client plumbing.

This module provides:
- BackendHttpClient: pooled AsyncClient bound to one backend
- build_timeout: per-call timeout with a short connect budget
"""

from .client import BackendHttpClient, build_timeout, HTTP_LIMITS

__all__ = [
    "BackendHttpClient",
    "build_timeout",
    "HTTP_LIMITS",
]
