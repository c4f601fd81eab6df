"""HTTP API for the auth service."""

from .endpoints import auth_router, csp_router, csrf_router, system_router

__all__ = [
    "auth_router",
    "csp_router",
    "csrf_router",
    "system_router",
]
