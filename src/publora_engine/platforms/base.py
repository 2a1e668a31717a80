"""Shared machinery for platform publisher adapters.

This module provides:

- The request/result types passed between the scheduler and adapters
- ``PlatformLimits`` and the text/media checks every adapter runs first
- Transient vs permanent failure classification for platform HTTP calls
- The ``PlatformAdapter`` base class with httpx request, download and
  polling helpers
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, ClassVar

import httpx

from publora_engine.core.settings import settings
from publora_engine.db.time import ensure_utc, utcnow
from publora_engine.platforms.ids import PlatformType
from publora_engine.platforms.settings import NoSettings, PlatformSettings

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500

ELLIPSIS = "…"

Sleeper = Callable[[float], Awaitable[None]]


class PublishError(Exception):
    """Base class for adapter failures; ``reason`` ends up in ``posts[].error``."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or reason
        super().__init__(f"{reason}: {self.message}")


class TransientPublishError(PublishError):
    """Rate limits, 5xx, timeouts and network errors. Safe to retry."""


class PermanentPublishError(PublishError):
    """Rejected content, expired credentials and other 4xx. Never retried."""


@dataclass(frozen=True)
class MediaItem:
    """An uploaded media asset as seen by adapters."""

    url: str
    content_type: str
    file_name: str = ""

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


@dataclass(frozen=True)
class ConnectionInfo:
    """Credentials and identity of the account being published to."""

    platform_id: str
    external_id: str
    access_token: str
    access_token_expires_at: datetime | None = None
    username: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, connection: Any) -> ConnectionInfo:
        return cls(
            platform_id=connection.platform_id,
            external_id=connection.external_id,
            access_token=connection.access_token,
            access_token_expires_at=connection.access_token_expires_at,
            username=connection.username,
            extra=dict(connection.extra or {}),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.access_token_expires_at is None:
            return False
        return ensure_utc(self.access_token_expires_at) <= ensure_utc(now or utcnow())


@dataclass(frozen=True)
class PublishRequest:
    """Everything an adapter needs to publish one platform post.

    ``content`` is a copy of the group's text; adapters may shorten it but the
    stored group content is never touched.
    """

    connection: ConnectionInfo
    content: str
    media: tuple[MediaItem, ...] = ()
    settings: PlatformSettings = field(default_factory=NoSettings)
    idempotency_key: str | None = None


@dataclass(frozen=True)
class PublishResult:
    posted_id: str
    published_url: str | None = None


@dataclass(frozen=True)
class PlatformLimits:
    """Content constraints a platform enforces on a single post."""

    max_chars: int
    max_media: int
    max_videos: int = 1
    allows_images: bool = True
    allows_video: bool = True
    media_required: bool = False
    # Images and videos in the same post.
    mixed_media: bool = False
    # Shorter text limit that applies once media is attached (e.g. captions).
    caption_max_chars: int | None = None

    def text_limit(self, has_media: bool) -> int:
        if has_media and self.caption_max_chars is not None:
            return self.caption_max_chars
        return self.max_chars

    def accepts(self, content_type: str) -> bool:
        if content_type.startswith("image/"):
            return self.allows_images
        if content_type.startswith("video/"):
            return self.allows_video
        return False


def truncate_text(text: str, limit: int) -> str:
    """Shorten ``text`` to at most ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    if limit <= 1:
        return text[:limit]
    return text[: limit - 1].rstrip() + ELLIPSIS


def check_media(limits: PlatformLimits, media: tuple[MediaItem, ...]) -> None:
    """Raise :class:`PermanentPublishError` if ``media`` breaks ``limits``."""
    if limits.media_required and not media:
        raise PermanentPublishError("MediaRequired", "this platform requires at least one media item")
    if len(media) > limits.max_media:
        raise PermanentPublishError(
            "MediaLimitExceeded",
            f"{len(media)} media items given, at most {limits.max_media} allowed",
        )
    for item in media:
        if not limits.accepts(item.content_type):
            raise PermanentPublishError(
                "UnsupportedMediaType",
                f"{item.content_type} is not accepted by this platform",
            )
    videos = sum(1 for item in media if item.is_video)
    if videos > limits.max_videos:
        raise PermanentPublishError(
            "MediaLimitExceeded",
            f"{videos} videos given, at most {limits.max_videos} allowed",
        )
    if videos and videos != len(media) and not limits.mixed_media:
        raise PermanentPublishError("UnsupportedMediaType", "images and videos cannot be mixed")


def classify_response(response: httpx.Response, context: str) -> None:
    """Raise the matching publish error for a non-2xx platform response."""
    if response.is_success:
        return
    snippet = response.text[:300]
    if (
        response.status_code == HTTP_TOO_MANY_REQUESTS
        or response.status_code >= HTTP_INTERNAL_SERVER_ERROR
    ):
        raise TransientPublishError(
            f"http_{response.status_code}",
            f"{context} responded with {response.status_code}: {snippet}",
        )
    if response.status_code in (401, 403):
        raise PermanentPublishError(
            "AuthRejected",
            f"{context} rejected credentials ({response.status_code}): {snippet}",
        )
    raise PermanentPublishError(
        f"http_{response.status_code}",
        f"{context} rejected the request ({response.status_code}): {snippet}",
    )


class PlatformAdapter(ABC):
    """Translate a generic post into one platform's publish calls.

    Subclasses declare ``platform`` and ``limits`` and implement
    :meth:`_publish`. Credential, text and media checks run here first.
    """

    platform: ClassVar[PlatformType]
    limits: ClassVar[PlatformLimits]

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        sleep: Sleeper | None = None,
        timeout_seconds: float | None = None,
        poll_attempts: int | None = None,
        poll_interval_seconds: float | None = None,
    ) -> None:
        self._client = client
        self._sleep = sleep or asyncio.sleep
        self.timeout_seconds = timeout_seconds or settings.platform_http_timeout_seconds
        self.poll_attempts = poll_attempts or settings.platform_media_poll_attempts
        self.poll_interval_seconds = (
            settings.platform_media_poll_interval_seconds
            if poll_interval_seconds is None
            else poll_interval_seconds
        )

    def prepare_text(self, request: PublishRequest) -> str:
        limit = self.limits.text_limit(bool(request.media))
        text = truncate_text(request.content, limit)
        if text != request.content:
            logger.info(
                "Truncated content for %s from %d to %d characters",
                request.connection.platform_id,
                len(request.content),
                len(text),
            )
        return text

    async def publish(self, request: PublishRequest) -> PublishResult:
        """Publish one post.

        Raises:
            TransientPublishError: The call may succeed if retried.
            PermanentPublishError: Retrying cannot help.
        """
        if request.connection.is_expired():
            raise PermanentPublishError("AuthExpired", "platform access token has expired")
        check_media(self.limits, request.media)
        text = self.prepare_text(request)
        return await self._publish(replace(request, content=text))

    @abstractmethod
    async def _publish(self, request: PublishRequest) -> PublishResult:
        """Perform the platform calls for an already checked request."""

    async def _request(
        self,
        method: str,
        url: str,
        *,
        context: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one HTTP request and classify failures.

        Keyword arguments are passed through to ``httpx.AsyncClient.request``.
        """
        context = context or f"{self.platform.value} {method} {url}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds)) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientPublishError("Timeout", f"{context} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransientPublishError("NetworkError", f"{context} failed: {exc}") from exc

        classify_response(response, context)
        return response

    async def _download(self, item: MediaItem) -> bytes:
        """Fetch media bytes for platforms that only accept direct uploads."""
        try:
            response = await self._request("GET", item.url, context=f"media download {item.url}")
        except PermanentPublishError as exc:
            raise PermanentPublishError("MediaUnavailable", exc.message) from exc
        return response.content

    async def _poll(
        self,
        check: Callable[[], Awaitable[bool]],
        *,
        what: str,
    ) -> None:
        """Call ``check`` until it returns True or attempts run out."""
        for attempt in range(1, self.poll_attempts + 1):
            if await check():
                return
            logger.debug("%s not ready yet (attempt %d)", what, attempt)
            await self._sleep(self.poll_interval_seconds)
        raise TransientPublishError("MediaProcessingTimeout", f"{what} did not finish processing")


def json_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body or fail permanently."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise PermanentPublishError("InvalidResponse", "platform returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise PermanentPublishError("InvalidResponse", "platform returned an unexpected body")
    return payload
