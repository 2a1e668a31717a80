"""Workspace user Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class WorkspaceUserCreate(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    display_name: str | None = Field(None, max_length=255)


class WorkspaceUserResponse(CamelModel):
    user_id: str = Field(..., validation_alias="id")
    email: str
    display_name: str | None = None
    created_at: datetime


class WorkspaceUserListResponse(CamelModel):
    success: bool = True
    users: list[WorkspaceUserResponse]
