# mypy: ignore-errors
"""Tests for the post group endpoints."""

from datetime import datetime

import pytest
from fastapi import status

from publora_engine.platforms.base import PlatformAdapter, PlatformLimits, PublishResult
from publora_engine.platforms.ids import PlatformType
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.services.api_keys import create_account
from publora_engine.services.scheduler import SchedulerWorker

SCHEDULED = "2030-03-01T10:00:00Z"


def _create(client, headers, **overrides):
    payload = {
        "content": "Excited to announce our new feature!",
        "platforms": ["twitter-123", "linkedin-456"],
        "scheduledTime": SCHEDULED,
    }
    payload.update(overrides)
    return client.post("/api/v1/create-post", json=payload, headers=headers)


def _instant(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_create_and_get_scheduled_post(client, auth_headers, connections) -> None:
    created = _create(client, auth_headers)

    assert created.status_code == status.HTTP_201_CREATED
    body = created.json()
    assert body["success"] is True
    group_id = body["postGroupId"]

    response = client.get(f"/api/v1/get-post/{group_id}", headers=auth_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["postGroupId"] == group_id
    assert data["status"] == "scheduled"
    assert data["platforms"] == ["twitter-123", "linkedin-456"]
    assert _instant(data["scheduledTime"]) == _instant(SCHEDULED)
    assert [(post["platformId"], post["status"]) for post in data["posts"]] == [
        ("twitter-123", "scheduled"),
        ("linkedin-456", "scheduled"),
    ]
    assert data["media"] == []


def test_create_without_time_is_draft(client, auth_headers, connections) -> None:
    created = _create(client, auth_headers, scheduledTime=None)
    group_id = created.json()["postGroupId"]

    data = client.get(f"/api/v1/get-post/{group_id}", headers=auth_headers).json()

    assert data["status"] == "draft"
    assert data["scheduledTime"] is None


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"content": ""}, "ContentRequired"),
        ({"platforms": []}, "PlatformsRequired"),
        ({"platforms": ["friendster-1"]}, "PlatformsRequired"),
        ({"scheduledTime": "2001-01-01T00:00:00Z"}, "InvalidScheduledTime"),
        ({"scheduledTime": "next tuesday"}, "InvalidScheduledTime"),
        ({"platformSettings": {"tiktok": {"privacyLevel": "SELF_ONLY"}}}, "InvalidPlatformSettings"),
    ],
)
def test_create_validation_errors(client, auth_headers, connections, overrides, reason) -> None:
    response = _create(client, auth_headers, **overrides)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False
    assert response.json()["error"] == reason


def test_create_with_unknown_connection(client, auth_headers, connections) -> None:
    response = _create(client, auth_headers, platforms=["twitter-123", "threads-999"])

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "PlatformNotFound"


def test_create_without_subscription(client, auth_headers, connections, account, db_session) -> None:
    account.subscription_active = False
    db_session.commit()

    response = _create(client, auth_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "SubscriptionRequired"


def test_get_unknown_post(client, auth_headers) -> None:
    response = client.get("/api/v1/get-post/doesnotexist", headers=auth_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "PostNotFound"


def test_reschedule_post(client, auth_headers, connections) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]

    response = client.put(
        f"/api/v1/update-post/{group_id}",
        json={"scheduledTime": "2030-04-01T09:30:00Z"},
        headers=auth_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["status"] == "scheduled"
    assert _instant(body["scheduledTime"]) == _instant("2030-04-01T09:30:00Z")


def test_move_scheduled_post_to_draft(client, auth_headers, connections) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]

    response = client.put(f"/api/v1/update-post/{group_id}", json={"status": "draft"}, headers=auth_headers)

    assert response.json()["status"] == "draft"


@pytest.mark.parametrize(
    ("payload", "reason"),
    [
        ({}, "NothingToUpdate"),
        ({"status": "published"}, "InvalidStatus"),
        ({"scheduledTime": "2001-01-01T00:00:00Z"}, "InvalidScheduledTime"),
    ],
)
def test_update_validation_errors(client, auth_headers, connections, payload, reason) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]

    response = client.put(f"/api/v1/update-post/{group_id}", json=payload, headers=auth_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == reason


def test_update_while_processing_conflicts(client, auth_headers, connections, db_session) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]
    PostGroupRepository(db_session).claim_for_processing(group_id, _instant(SCHEDULED))

    response = client.put(
        f"/api/v1/update-post/{group_id}",
        json={"scheduledTime": "2030-04-01T09:30:00Z"},
        headers=auth_headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "InvalidTransition"


def test_delete_post(client, auth_headers, connections) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]

    response = client.delete(f"/api/v1/delete-post/{group_id}", headers=auth_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}
    assert client.get(f"/api/v1/get-post/{group_id}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/v1/delete-post/{group_id}", headers=auth_headers).status_code == 404


def test_delete_while_processing_conflicts(client, auth_headers, connections, db_session) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]
    PostGroupRepository(db_session).claim_for_processing(group_id, _instant(SCHEDULED))

    response = client.delete(f"/api/v1/delete-post/{group_id}", headers=auth_headers)

    assert response.status_code == status.HTTP_409_CONFLICT


def test_other_account_cannot_see_post(client, auth_headers, connections, db_session) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]
    _, other_key = create_account(db_session, "Rival")

    response = client.get(f"/api/v1/get-post/{group_id}", headers={"x-publora-key": other_key})

    assert response.status_code == status.HTTP_404_NOT_FOUND


class _StubAdapter(PlatformAdapter):
    platform = PlatformType.TWITTER
    limits = PlatformLimits(max_chars=3000, max_media=4)

    async def _publish(self, request):
        post_id = f"{request.connection.platform_id}-post"
        return PublishResult(posted_id=post_id, published_url=f"https://example.com/{post_id}")


@pytest.mark.asyncio
async def test_scheduled_post_is_published(client, auth_headers, connections, session_factory) -> None:
    group_id = _create(client, auth_headers).json()["postGroupId"]
    worker = SchedulerWorker(session_factory, adapter_factory=lambda platform: _StubAdapter())

    claimed = await worker.run_once(now=_instant(SCHEDULED))

    assert claimed == [group_id]
    data = client.get(f"/api/v1/get-post/{group_id}", headers=auth_headers).json()
    assert data["status"] == "published"
    assert [post["postedId"] for post in data["posts"]] == ["twitter-123-post", "linkedin-456-post"]
    assert data["posts"][1]["publishedUrl"] == "https://example.com/linkedin-456-post"
