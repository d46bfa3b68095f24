"""API routes."""

from .auth import router as auth_router
from .jobs import router as jobs_router
from .matching import router as matching_router
from .tasks import router as tasks_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "users_router",
    "tasks_router",
    "jobs_router",
    "matching_router",
]
