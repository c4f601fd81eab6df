"""API endpoint modules."""

from .auth import router as auth_router
from .csp import router as csp_router
from .csrf import router as csrf_router
from .system import router as system_router

__all__ = [
    "auth_router",
    "csp_router",
    "csrf_router",
    "system_router",
]
