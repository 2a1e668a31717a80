"""API endpoint modules for version 1."""

from .connections import router as connections_router
from .linkedin import router as linkedin_router
from .media import router as media_router
from .posts import router as posts_router
from .system import router as system_router
from .workspace import router as workspace_router

__all__ = [
    "connections_router",
    "linkedin_router",
    "media_router",
    "posts_router",
    "system_router",
    "workspace_router",
]
