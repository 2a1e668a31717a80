"""Adapter lookup by :class:`PlatformType`."""

from __future__ import annotations

from typing import Any

from publora_engine.platforms.base import PlatformAdapter, PlatformLimits
from publora_engine.platforms.bluesky import BlueskyAdapter
from publora_engine.platforms.facebook import FacebookAdapter
from publora_engine.platforms.ids import PlatformType
from publora_engine.platforms.instagram import InstagramAdapter
from publora_engine.platforms.linkedin import LinkedInAdapter
from publora_engine.platforms.mastodon import MastodonAdapter
from publora_engine.platforms.telegram import TelegramAdapter
from publora_engine.platforms.threads import ThreadsAdapter
from publora_engine.platforms.tiktok import TikTokAdapter
from publora_engine.platforms.twitter import TwitterAdapter
from publora_engine.platforms.youtube import YouTubeAdapter

ADAPTERS: dict[PlatformType, type[PlatformAdapter]] = {
    adapter.platform: adapter
    for adapter in (
        TwitterAdapter,
        LinkedInAdapter,
        InstagramAdapter,
        ThreadsAdapter,
        TikTokAdapter,
        YouTubeAdapter,
        FacebookAdapter,
        BlueskyAdapter,
        MastodonAdapter,
        TelegramAdapter,
    )
}


def get_adapter(platform: PlatformType, **kwargs: Any) -> PlatformAdapter:
    """Instantiate the adapter for ``platform``; kwargs go to its constructor."""
    return ADAPTERS[platform](**kwargs)


def get_limits(platform: PlatformType) -> PlatformLimits:
    return ADAPTERS[platform].limits
