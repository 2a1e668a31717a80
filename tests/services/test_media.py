# mypy: ignore-errors
"""Tests for the media upload broker."""

from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from publora_engine.core.errors import InvalidTransition, MediaLimitExceeded, NotFound, ValidationFailed
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.services.media import MediaUploadBroker, safe_file_name
from publora_engine.services.validation import validate_create

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
SECRET = "media-test-secret"


def _group(db_session, principal, platforms=("twitter-123",)):
    payload = {
        "content": "With media",
        "platforms": list(platforms),
        "scheduledTime": (NOW + timedelta(days=1)).isoformat(),
    }
    return PostGroupRepository(db_session).create(validate_create(payload, NOW), principal, now=NOW)


def _token(upload_url: str) -> str:
    return parse_qs(urlparse(upload_url).query)["token"][0]


@pytest.fixture
def broker(db_session):
    return MediaUploadBroker(db_session, secret_key=SECRET, ttl_seconds=900)


def test_issue_and_confirm_upload(db_session, principal, broker) -> None:
    group = _group(db_session, principal)

    target = broker.request_upload_target(group.id, "My Photo.PNG", "image/png", principal, now=NOW)

    assert target.expires_at == NOW + timedelta(seconds=900)
    assert f"/{group.id}/{target.media_id}/My-Photo.PNG" in target.file_url
    assert target.upload_url.split("?")[0].endswith(f"/{group.id}/{target.media_id}/My-Photo.PNG")

    asset = broker.confirm_upload(_token(target.upload_url), now=NOW)

    assert asset.status == "uploaded"
    assert asset.post_group_id == group.id
    media = PostGroupRepository(db_session).get(group.id, principal).media
    assert [(item.id, item.status) for item in media] == [(target.media_id, "uploaded")]


def test_confirm_is_idempotent_failure_on_reuse(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    target = broker.request_upload_target(group.id, "a.jpg", "image/jpeg", principal, now=NOW)
    token = _token(target.upload_url)
    broker.confirm_upload(token, now=NOW)

    with pytest.raises(InvalidTransition) as excinfo:
        broker.confirm_upload(token, now=NOW)
    assert excinfo.value.reason == "UploadAlreadyConfirmed"


def test_upload_for_unknown_group(db_session, principal, broker) -> None:
    with pytest.raises(NotFound) as excinfo:
        broker.request_upload_target("does-not-exist", "a.jpg", "image/jpeg", principal, now=NOW)
    assert excinfo.value.reason == "PostNotFound"


@pytest.mark.parametrize("content_type", ["application/pdf", "", "text/plain"])
def test_unsupported_content_type(db_session, principal, broker, content_type) -> None:
    group = _group(db_session, principal)
    with pytest.raises(ValidationFailed) as excinfo:
        broker.request_upload_target(group.id, "file", content_type, principal, now=NOW)
    assert excinfo.value.reason == "UnsupportedMediaType"


def test_image_rejected_when_a_platform_is_video_only(db_session, principal, broker) -> None:
    group = _group(db_session, principal, platforms=("twitter-123", "youtube-55"))
    with pytest.raises(ValidationFailed) as excinfo:
        broker.request_upload_target(group.id, "a.png", "image/png", principal, now=NOW)
    assert excinfo.value.reason == "UnsupportedMediaType"


def test_media_limit_uses_most_restrictive_platform(db_session, principal, broker) -> None:
    group = _group(db_session, principal, platforms=("twitter-123", "linkedin-456"))
    for index in range(4):
        broker.request_upload_target(group.id, f"{index}.png", "image/png", principal, now=NOW)

    with pytest.raises(MediaLimitExceeded):
        broker.request_upload_target(group.id, "5.png", "image/png", principal, now=NOW)

    # Expired, unconfirmed targets no longer count against the limit.
    later = NOW + timedelta(hours=1)
    target = broker.request_upload_target(group.id, "5.png", "image/png", principal, now=later)
    assert target.media_id


def test_second_video_exceeds_platform_video_limit(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    broker.request_upload_target(group.id, "one.mp4", "video/mp4", principal, now=NOW)

    with pytest.raises(MediaLimitExceeded) as excinfo:
        broker.request_upload_target(group.id, "two.mp4", "video/mp4", principal, now=NOW)
    assert "twitter" in excinfo.value.message


@pytest.mark.parametrize(("first", "second"), [("image/png", "video/mp4"), ("video/mp4", "image/png")])
def test_images_and_video_cannot_be_mixed(db_session, principal, broker, first, second) -> None:
    group = _group(db_session, principal)
    broker.request_upload_target(group.id, "first", first, principal, now=NOW)

    with pytest.raises(ValidationFailed) as excinfo:
        broker.request_upload_target(group.id, "second", second, principal, now=NOW)
    assert excinfo.value.reason == "UnsupportedMediaType"


def test_mixed_media_allowed_where_platform_supports_it(db_session, principal, broker) -> None:
    group = _group(db_session, principal, platforms=("threads-777",))
    broker.request_upload_target(group.id, "a.png", "image/png", principal, now=NOW)

    target = broker.request_upload_target(group.id, "b.mp4", "video/mp4", principal, now=NOW)

    assert target.media_id


def test_expired_video_target_frees_the_video_slot(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    broker.request_upload_target(group.id, "one.mp4", "video/mp4", principal, now=NOW)

    target = broker.request_upload_target(
        group.id, "two.mp4", "video/mp4", principal, now=NOW + timedelta(hours=1)
    )

    assert target.media_id


def test_no_uploads_once_processing(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    target = broker.request_upload_target(group.id, "a.png", "image/png", principal, now=NOW)
    PostGroupRepository(db_session).claim_for_processing(group.id, NOW + timedelta(days=1))

    with pytest.raises(InvalidTransition):
        broker.request_upload_target(group.id, "b.png", "image/png", principal, now=NOW)
    with pytest.raises(InvalidTransition):
        broker.confirm_upload(_token(target.upload_url), now=NOW)


def test_expired_token_rejected(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    long_ago = datetime(2001, 1, 1, tzinfo=UTC)
    target = broker.request_upload_target(group.id, "a.png", "image/png", principal, now=long_ago)

    with pytest.raises(ValidationFailed) as excinfo:
        broker.confirm_upload(_token(target.upload_url))
    assert excinfo.value.reason == "InvalidUploadToken"


def test_tampered_token_rejected(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    target = broker.request_upload_target(group.id, "a.png", "image/png", principal, now=NOW)
    other = MediaUploadBroker(db_session, secret_key="another-secret")

    with pytest.raises(ValidationFailed):
        other.confirm_upload(_token(target.upload_url), now=NOW)


def test_confirm_after_group_deleted(db_session, principal, broker) -> None:
    group = _group(db_session, principal)
    target = broker.request_upload_target(group.id, "a.png", "image/png", principal, now=NOW)
    PostGroupRepository(db_session).delete(group.id, principal)

    with pytest.raises(NotFound) as excinfo:
        broker.confirm_upload(_token(target.upload_url), now=NOW)
    assert excinfo.value.reason == "MediaNotFound"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("photo.jpg", "photo.jpg"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\clip one.mp4", "clip-one.mp4"),
        ("...", "upload"),
    ],
)
def test_safe_file_name(raw, expected) -> None:
    assert safe_file_name(raw) == expected
