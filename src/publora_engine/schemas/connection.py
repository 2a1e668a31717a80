"""Platform connection Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from .common import CamelModel


class ConnectionResponse(CamelModel):
    """A connected social account; credentials are never exposed."""

    platform_id: str
    platform: str
    username: str | None = None
    display_name: str | None = None
    profile_image_url: str | None = None
    access_token_expires_at: datetime | None = None


class ConnectionListResponse(CamelModel):
    success: bool = True
    connections: list[ConnectionResponse]
