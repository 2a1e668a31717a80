"""Per-platform publishing settings with explicit defaults.

Clients may send ``platformSettings`` keyed by platform name using camelCase
keys. Overrides are merged over the defaults below; unknown keys or values are
rejected instead of being silently dropped.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from publora_engine.platforms.ids import PlatformType

TIKTOK_PRIVACY_LEVELS = (
    "PUBLIC_TO_EVERYONE",
    "MUTUAL_FOLLOW_FRIENDS",
    "FOLLOWER_OF_CREATOR",
    "SELF_ONLY",
)
INSTAGRAM_MEDIA_TYPES = ("REELS", "STORIES")
YOUTUBE_PRIVACY = ("public", "unlisted", "private")


@dataclass(frozen=True)
class TikTokSettings:
    privacy_level: str = "PUBLIC_TO_EVERYONE"
    allow_comments: bool = True
    allow_duet: bool = False
    allow_stitch: bool = False

    def validate(self) -> None:
        if self.privacy_level not in TIKTOK_PRIVACY_LEVELS:
            raise ValueError(f"unsupported TikTok privacy level: {self.privacy_level}")


@dataclass(frozen=True)
class InstagramSettings:
    # Applies to video posts; image posts are always feed posts or carousels.
    media_type: str = "REELS"

    def validate(self) -> None:
        if self.media_type not in INSTAGRAM_MEDIA_TYPES:
            raise ValueError(f"unsupported Instagram media type: {self.media_type}")


@dataclass(frozen=True)
class YouTubeSettings:
    privacy: str = "public"
    # Empty means "derive a title from the content".
    title: str = ""

    def validate(self) -> None:
        if self.privacy not in YOUTUBE_PRIVACY:
            raise ValueError(f"unsupported YouTube privacy: {self.privacy}")
        if len(self.title) > 100:
            raise ValueError("YouTube title exceeds 100 characters")


@dataclass(frozen=True)
class NoSettings:
    """Platforms without configurable publish options."""

    def validate(self) -> None:
        return None


PlatformSettings = TikTokSettings | InstagramSettings | YouTubeSettings | NoSettings

_SETTINGS_TYPES: dict[PlatformType, type[Any]] = {
    PlatformType.TIKTOK: TikTokSettings,
    PlatformType.INSTAGRAM: InstagramSettings,
    PlatformType.YOUTUBE: YouTubeSettings,
}


def _to_snake(key: str) -> str:
    out = []
    for char in key:
        if char.isupper():
            out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def merge_platform_settings(
    platform: PlatformType,
    overrides: Mapping[str, Any] | None = None,
) -> PlatformSettings:
    """Return the effective settings for ``platform``.

    Raises:
        ValueError: On unknown keys, wrong value types or unsupported values.
    """
    settings_type = _SETTINGS_TYPES.get(platform, NoSettings)
    defaults = settings_type()
    if not overrides:
        return defaults

    fields = {field.name: field for field in dataclasses.fields(settings_type)}
    changes: dict[str, Any] = {}
    for raw_key, value in overrides.items():
        key = _to_snake(raw_key)
        if key not in fields:
            raise ValueError(f"unknown {platform.value} setting: {raw_key}")
        expected = type(getattr(defaults, key))
        if not isinstance(value, expected):
            raise ValueError(f"{platform.value} setting {raw_key} must be {expected.__name__}")
        changes[key] = value

    merged = dataclasses.replace(defaults, **changes)
    merged.validate()
    return merged
