"""Version 1 API endpoints."""

from .endpoints import (
    connections_router,
    linkedin_router,
    media_router,
    posts_router,
    system_router,
    workspace_router,
)

__all__ = [
    "connections_router",
    "linkedin_router",
    "media_router",
    "posts_router",
    "system_router",
    "workspace_router",
]
