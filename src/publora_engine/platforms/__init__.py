"""Platform identifiers, settings and publisher adapters."""

from .base import (
    ConnectionInfo,
    MediaItem,
    PermanentPublishError,
    PlatformAdapter,
    PlatformLimits,
    PublishError,
    PublishRequest,
    PublishResult,
    TransientPublishError,
)
from .ids import PlatformRef, PlatformType, parse_platform_id
from .registry import ADAPTERS, get_adapter, get_limits

__all__ = [
    "ADAPTERS",
    "ConnectionInfo",
    "MediaItem",
    "PermanentPublishError",
    "PlatformAdapter",
    "PlatformLimits",
    "PlatformRef",
    "PlatformType",
    "PublishError",
    "PublishRequest",
    "PublishResult",
    "TransientPublishError",
    "get_adapter",
    "get_limits",
    "parse_platform_id",
]
