# src/publora_engine/models/__init__.py
"""SQLAlchemy models for the Publora Engine."""

from .account import Account, ApiKey, WorkspaceUser
from .connection import PlatformConnection
from .media import MediaAsset
from .post_group import PlatformPost, PostGroup, PostGroupIdRegistry, PostGroupTransition

__all__ = [
    "Account", "ApiKey", "WorkspaceUser",
    "PlatformConnection",
    "MediaAsset",
    "PlatformPost", "PostGroup", "PostGroupIdRegistry", "PostGroupTransition",
]
