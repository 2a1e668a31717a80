"""Mastodon publisher; each connection carries its own instance URL."""

from __future__ import annotations

import logging

from publora_engine.platforms.base import (
    MediaItem,
    PermanentPublishError,
    PlatformAdapter,
    PlatformLimits,
    PublishRequest,
    PublishResult,
    json_body,
)
from publora_engine.platforms.ids import PlatformType

logger = logging.getLogger(__name__)

HTTP_ACCEPTED = 202


class MastodonAdapter(PlatformAdapter):
    platform = PlatformType.MASTODON
    limits = PlatformLimits(max_chars=500, max_media=4, max_videos=1)

    @staticmethod
    def _instance(request: PublishRequest) -> str:
        instance = request.connection.extra.get("instance_url")
        if not instance:
            raise PermanentPublishError("MissingInstance", "connection has no Mastodon instance_url")
        return str(instance).rstrip("/")

    async def _upload(self, request: PublishRequest, item: MediaItem) -> str:
        instance = self._instance(request)
        headers = {"Authorization": f"Bearer {request.connection.access_token}"}
        data = await self._download(item)
        response = await self._request(
            "POST",
            f"{instance}/api/v2/media",
            headers=headers,
            files={"file": (item.file_name or "media", data, item.content_type)},
        )
        media = json_body(response)
        media_id = str(media.get("id") or "")
        if not media_id:
            raise PermanentPublishError("InvalidResponse", "media upload returned no id")

        # 202 means the attachment is still being processed.
        if response.status_code == HTTP_ACCEPTED or not media.get("url"):
            async def processed() -> bool:
                current = await self._request(
                    "GET", f"{instance}/api/v1/media/{media_id}", headers=headers
                )
                return current.status_code != HTTP_ACCEPTED and bool(json_body(current).get("url"))

            await self._poll(processed, what=f"Mastodon media {media_id}")
        return media_id

    async def _publish(self, request: PublishRequest) -> PublishResult:
        instance = self._instance(request)
        media_ids = [await self._upload(request, item) for item in request.media]

        headers = {"Authorization": f"Bearer {request.connection.access_token}"}
        if request.idempotency_key:
            headers["Idempotency-Key"] = request.idempotency_key
        body: dict[str, object] = {"status": request.content, "visibility": "public"}
        if media_ids:
            body["media_ids"] = media_ids

        status = json_body(
            await self._request("POST", f"{instance}/api/v1/statuses", headers=headers, json=body)
        )
        if not status.get("id"):
            raise PermanentPublishError("InvalidResponse", "status create returned no id")

        logger.info("Published Mastodon status %s for %s", status["id"], request.connection.platform_id)
        return PublishResult(posted_id=str(status["id"]), published_url=status.get("url"))
