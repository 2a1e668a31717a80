"""Post group Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from publora_engine.models import MediaAsset, PlatformPost, PostGroup

from .common import CamelModel


class PlatformPostResponse(CamelModel):
    """Per-platform outcome of a post group."""

    platform: str
    platform_id: str
    status: str
    posted_id: str | None = None
    published_url: str | None = None
    error: str | None = None
    attempts: int = 0
    published_at: datetime | None = None

    @classmethod
    def from_model(cls, post: PlatformPost) -> PlatformPostResponse:
        return cls.model_validate(post)


class MediaResponse(CamelModel):
    media_id: str
    file_name: str
    content_type: str
    file_url: str
    status: str
    uploaded_at: datetime | None = None

    @classmethod
    def from_model(cls, asset: MediaAsset) -> MediaResponse:
        return cls(
            media_id=asset.id,
            file_name=asset.file_name,
            content_type=asset.content_type,
            file_url=asset.file_url,
            status=asset.status,
            uploaded_at=asset.uploaded_at,
        )


class PostGroupResponse(CamelModel):
    """Full view of a post group returned by ``GET /get-post/{id}``."""

    success: bool = True
    post_group_id: str
    content: str
    platforms: list[str]
    platform_settings: dict[str, dict[str, Any]] = Field(default_factory=dict)
    scheduled_time: datetime | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    posts: list[PlatformPostResponse]
    media: list[MediaResponse]

    @classmethod
    def from_model(cls, group: PostGroup) -> PostGroupResponse:
        return cls(
            post_group_id=group.id,
            content=group.content,
            platforms=list(group.platforms),
            platform_settings=dict(group.platform_settings or {}),
            scheduled_time=group.scheduled_time,
            status=group.status,
            created_at=group.created_at,
            updated_at=group.updated_at,
            posts=[PlatformPostResponse.from_model(post) for post in group.posts],
            media=[MediaResponse.from_model(asset) for asset in group.media],
        )


class CreatePostResponse(CamelModel):
    success: bool = True
    post_group_id: str


class UpdatePostResponse(CamelModel):
    success: bool = True
    post_group_id: str
    status: str
    scheduled_time: datetime | None = None
