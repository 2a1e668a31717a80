"""
Pydantic schemas for API request/response models.

All public JSON uses camelCase keys; Python attributes stay snake_case.
"""

from .common import CamelModel, ErrorResponse, SuccessResponse
from .connection import ConnectionListResponse, ConnectionResponse
from .linkedin import StatisticsResponse
from .media import UploadUrlRequest, UploadUrlResponse
from .post import CreatePostResponse, PostGroupResponse, UpdatePostResponse
from .workspace import WorkspaceUserCreate, WorkspaceUserResponse

__all__ = [
    "CamelModel", "ErrorResponse", "SuccessResponse",
    "ConnectionListResponse", "ConnectionResponse",
    "StatisticsResponse",
    "UploadUrlRequest", "UploadUrlResponse",
    "CreatePostResponse", "PostGroupResponse", "UpdatePostResponse",
    "WorkspaceUserCreate", "WorkspaceUserResponse",
]
