"""Media upload Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class UploadUrlRequest(CamelModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=127)
    post_group_id: str = Field(..., min_length=1)


class UploadUrlResponse(CamelModel):
    success: bool = True
    upload_url: str
    file_url: str
    media_id: str
    expires_at: datetime


class ConfirmUploadRequest(CamelModel):
    token: str = Field(..., min_length=1, description="Token embedded in the issued uploadUrl.")


class ConfirmUploadResponse(CamelModel):
    success: bool = True
    media_id: str
    post_group_id: str
    file_url: str
