# mypy: ignore-errors
"""Tests for shared adapter machinery: limits, truncation and error classification."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from publora_engine.platforms import ADAPTERS, PlatformType, get_adapter, get_limits
from publora_engine.platforms.base import (
    ConnectionInfo,
    MediaItem,
    PermanentPublishError,
    PlatformLimits,
    TransientPublishError,
    check_media,
    classify_response,
    truncate_text,
)
from publora_engine.platforms.settings import (
    InstagramSettings,
    NoSettings,
    TikTokSettings,
    merge_platform_settings,
)
from publora_engine.platforms.twitter import TwitterAdapter

IMAGE = MediaItem(url="https://media.example.com/a.png", content_type="image/png")
VIDEO = MediaItem(url="https://media.example.com/a.mp4", content_type="video/mp4")


def test_every_platform_has_an_adapter() -> None:
    assert set(ADAPTERS) == set(PlatformType)
    assert isinstance(get_adapter(PlatformType.TWITTER), TwitterAdapter)
    assert get_limits(PlatformType.BLUESKY).max_chars == 300


@pytest.mark.parametrize(
    ("text", "limit", "expected"),
    [
        ("short", 10, "short"),
        ("exactly ten", 11, "exactly ten"),
        ("hello wonderful world", 10, "hello won…"),
        ("abc", 1, "a"),
    ],
)
def test_truncate_text(text, limit, expected) -> None:
    result = truncate_text(text, limit)
    assert result == expected
    assert len(result) <= limit


def test_check_media_rules() -> None:
    limits = PlatformLimits(max_chars=100, max_media=2, max_videos=1)
    check_media(limits, (IMAGE, IMAGE))

    cases = [
        ((IMAGE, IMAGE, IMAGE), "MediaLimitExceeded"),
        ((IMAGE, VIDEO), "UnsupportedMediaType"),
        ((MediaItem(url="u", content_type="application/pdf"),), "UnsupportedMediaType"),
    ]
    for media, reason in cases:
        with pytest.raises(PermanentPublishError) as excinfo:
            check_media(limits, media)
        assert excinfo.value.reason == reason

    with pytest.raises(PermanentPublishError) as excinfo:
        check_media(PlatformLimits(max_chars=100, max_media=1, media_required=True), ())
    assert excinfo.value.reason == "MediaRequired"


def test_caption_limit_applies_with_media() -> None:
    limits = PlatformLimits(max_chars=4096, max_media=10, caption_max_chars=1024)
    assert limits.text_limit(False) == 4096
    assert limits.text_limit(True) == 1024


@pytest.mark.parametrize(
    ("status_code", "error_type", "reason"),
    [
        (429, TransientPublishError, "http_429"),
        (500, TransientPublishError, "http_500"),
        (503, TransientPublishError, "http_503"),
        (400, PermanentPublishError, "http_400"),
        (404, PermanentPublishError, "http_404"),
        (401, PermanentPublishError, "AuthRejected"),
        (403, PermanentPublishError, "AuthRejected"),
    ],
)
def test_classify_response(status_code, error_type, reason) -> None:
    response = httpx.Response(status_code, text="nope", request=httpx.Request("POST", "https://api.example.com"))
    with pytest.raises(error_type) as excinfo:
        classify_response(response, "example")
    assert excinfo.value.reason == reason


def test_classify_success_is_silent() -> None:
    classify_response(httpx.Response(201, request=httpx.Request("POST", "https://api.example.com")), "example")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "reason"),
    [
        (httpx.ConnectTimeout("slow"), "Timeout"),
        (httpx.ConnectError("refused"), "NetworkError"),
    ],
)
async def test_transport_errors_are_transient(exc, reason) -> None:
    def handler(request):
        raise exc

    adapter = TwitterAdapter(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransientPublishError) as excinfo:
        await adapter._request("GET", "https://api.example.com/ping")
    assert excinfo.value.reason == reason


def test_connection_expiry() -> None:
    now = datetime(2030, 1, 1, tzinfo=UTC)
    connection = ConnectionInfo(
        platform_id="twitter-1",
        external_id="1",
        access_token="t",
        access_token_expires_at=now,
    )
    assert connection.is_expired(now)
    assert not connection.is_expired(now - timedelta(seconds=1))
    assert not ConnectionInfo(platform_id="twitter-1", external_id="1", access_token="t").is_expired()


def test_merge_platform_settings_defaults() -> None:
    assert merge_platform_settings(PlatformType.TIKTOK) == TikTokSettings()
    assert merge_platform_settings(PlatformType.INSTAGRAM, {"mediaType": "STORIES"}) == InstagramSettings(
        media_type="STORIES"
    )
    assert merge_platform_settings(PlatformType.TWITTER) == NoSettings()
    with pytest.raises(ValueError):
        merge_platform_settings(PlatformType.TWITTER, {"anything": True})
