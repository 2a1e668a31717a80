"""Facebook Page publisher (Graph API feed, photos and videos edges)."""

from __future__ import annotations

import json
import logging

from publora_engine.core.settings import settings
from publora_engine.platforms.base import (
    PermanentPublishError,
    PlatformAdapter,
    PlatformLimits,
    PublishRequest,
    PublishResult,
    json_body,
)
from publora_engine.platforms.ids import PlatformType

logger = logging.getLogger(__name__)


class FacebookAdapter(PlatformAdapter):
    platform = PlatformType.FACEBOOK
    limits = PlatformLimits(max_chars=63206, max_media=10, max_videos=1)

    async def _post(self, request: PublishRequest, edge: str, data: dict[str, str]) -> dict:
        return json_body(
            await self._request(
                "POST",
                f"{settings.meta_graph_base_url}/{request.connection.external_id}/{edge}",
                data={**data, "access_token": request.connection.access_token},
            )
        )

    async def _publish(self, request: PublishRequest) -> PublishResult:
        media = request.media
        if not media:
            payload = await self._post(request, "feed", {"message": request.content})
        elif media[0].is_video:
            payload = await self._post(
                request, "videos", {"file_url": media[0].url, "description": request.content}
            )
        elif len(media) == 1:
            payload = await self._post(
                request, "photos", {"url": media[0].url, "caption": request.content}
            )
        else:
            # Unpublished photos first, then one feed post that attaches them.
            photo_ids = []
            for item in media:
                photo = await self._post(request, "photos", {"url": item.url, "published": "false"})
                if not photo.get("id"):
                    raise PermanentPublishError("InvalidResponse", f"photo upload failed: {photo}")
                photo_ids.append(photo["id"])
            data = {"message": request.content}
            for index, photo_id in enumerate(photo_ids):
                data[f"attached_media[{index}]"] = json.dumps({"media_fbid": photo_id})
            payload = await self._post(request, "feed", data)

        post_id = payload.get("post_id") or payload.get("id")
        if not post_id:
            raise PermanentPublishError("InvalidResponse", f"Facebook returned no id: {payload}")

        logger.info("Published Facebook post %s for %s", post_id, request.connection.platform_id)
        return PublishResult(posted_id=str(post_id), published_url=f"https://www.facebook.com/{post_id}")
