# mypy: ignore-errors
"""Tests for the media upload endpoints."""

from urllib.parse import parse_qs, urlparse

from fastapi import status


def _create_group(client, headers, platforms=("twitter-123", "linkedin-456")) -> str:
    response = client.post(
        "/api/v1/create-post",
        json={"content": "Look at this", "platforms": list(platforms)},
        headers=headers,
    )
    return response.json()["postGroupId"]


def _upload_url(client, headers, group_id, **overrides):
    payload = {"fileName": "launch photo.png", "contentType": "image/png", "postGroupId": group_id}
    payload.update(overrides)
    return client.post("/api/v1/get-upload-url", json=payload, headers=headers)


def _token(upload_url: str) -> str:
    return parse_qs(urlparse(upload_url).query)["token"][0]


def test_issue_and_confirm_upload(client, auth_headers, connections) -> None:
    group_id = _create_group(client, auth_headers)

    issued = _upload_url(client, auth_headers, group_id)

    assert issued.status_code == status.HTTP_200_OK
    target = issued.json()
    assert target["success"] is True
    assert target["mediaId"] in target["uploadUrl"]
    assert target["fileUrl"].endswith(".png")
    assert target["expiresAt"]

    confirmed = client.post(
        "/api/v1/confirm-upload",
        json={"token": _token(target["uploadUrl"])},
        headers=auth_headers,
    )

    assert confirmed.status_code == status.HTTP_200_OK
    assert confirmed.json()["mediaId"] == target["mediaId"]
    assert confirmed.json()["postGroupId"] == group_id

    media = client.get(f"/api/v1/get-post/{group_id}", headers=auth_headers).json()["media"]
    assert [(item["mediaId"], item["status"]) for item in media] == [(target["mediaId"], "uploaded")]


def test_confirm_twice_conflicts(client, auth_headers, connections) -> None:
    group_id = _create_group(client, auth_headers)
    token = _token(_upload_url(client, auth_headers, group_id).json()["uploadUrl"])
    client.post("/api/v1/confirm-upload", json={"token": token}, headers=auth_headers)

    response = client.post("/api/v1/confirm-upload", json={"token": token}, headers=auth_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "UploadAlreadyConfirmed"


def test_upload_url_for_unknown_group(client, auth_headers) -> None:
    response = _upload_url(client, auth_headers, "doesnotexist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "PostNotFound"


def test_upload_url_rejects_unsupported_type(client, auth_headers, connections) -> None:
    group_id = _create_group(client, auth_headers)

    response = _upload_url(client, auth_headers, group_id, fileName="notes.pdf", contentType="application/pdf")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "UnsupportedMediaType"


def test_garbage_token_is_rejected(client, auth_headers) -> None:
    response = client.post("/api/v1/confirm-upload", json={"token": "not-a-jwt"}, headers=auth_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "InvalidUploadToken"


def test_missing_field_is_a_validation_error(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/get-upload-url",
        json={"fileName": "a.png", "contentType": "image/png"},
        headers=auth_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "ValidationError"
    assert "postGroupId" in body["message"]


def test_second_video_for_x_is_refused(client, auth_headers, connections) -> None:
    group_id = _create_group(client, auth_headers, platforms=("twitter-123",))
    _upload_url(client, auth_headers, group_id, fileName="one.mp4", contentType="video/mp4")

    response = _upload_url(client, auth_headers, group_id, fileName="two.mp4", contentType="video/mp4")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "MediaLimitExceeded"
