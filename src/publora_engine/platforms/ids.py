"""Platform identifiers.

Connections are referenced as ``"{platform}-{opaque-id}"``. The prefix is
parsed exactly once, at the request boundary, into a :class:`PlatformRef`;
everything downstream dispatches on :class:`PlatformType`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PlatformType(str, Enum):
    """Closed set of publishing targets."""

    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"
    THREADS = "threads"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    FACEBOOK = "facebook"
    BLUESKY = "bluesky"
    MASTODON = "mastodon"
    TELEGRAM = "telegram"


@dataclass(frozen=True)
class PlatformRef:
    """A parsed platform-connection reference."""

    platform: PlatformType
    external_id: str

    @property
    def platform_id(self) -> str:
        return f"{self.platform.value}-{self.external_id}"


def parse_platform_id(value: object) -> PlatformRef:
    """Parse ``"twitter-123"`` into a :class:`PlatformRef`.

    Raises:
        ValueError: If the value is not a string of the expected shape or the
            platform prefix is unknown.
    """
    if not isinstance(value, str):
        raise ValueError("platform id must be a string")
    prefix, sep, external_id = value.strip().partition("-")
    if not sep or not external_id:
        raise ValueError(f"malformed platform id: {value!r}")
    try:
        platform = PlatformType(prefix.lower())
    except ValueError as err:
        raise ValueError(f"unsupported platform: {prefix!r}") from err
    return PlatformRef(platform=platform, external_id=external_id)
