"""Bluesky publisher over AT Protocol XRPC (uploadBlob + createRecord)."""

from __future__ import annotations

import logging

from publora_engine.core.settings import settings
from publora_engine.db.time import utcnow
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


class BlueskyAdapter(PlatformAdapter):
    platform = PlatformType.BLUESKY
    limits = PlatformLimits(max_chars=300, max_media=4, max_videos=1)

    def _pds(self, request: PublishRequest) -> str:
        return str(request.connection.extra.get("pds_url") or settings.bluesky_pds_base_url).rstrip("/")

    async def _upload_blob(self, request: PublishRequest, item: MediaItem) -> dict:
        data = await self._download(item)
        payload = json_body(
            await self._request(
                "POST",
                f"{self._pds(request)}/xrpc/com.atproto.repo.uploadBlob",
                headers={
                    "Authorization": f"Bearer {request.connection.access_token}",
                    "Content-Type": item.content_type,
                },
                content=data,
            )
        )
        if "blob" not in payload:
            raise PermanentPublishError("InvalidResponse", "uploadBlob returned no blob")
        return payload["blob"]

    async def _publish(self, request: PublishRequest) -> PublishResult:
        did = str(request.connection.extra.get("did") or request.connection.external_id)
        record: dict[str, object] = {
            "$type": "app.bsky.feed.post",
            "text": request.content,
            "createdAt": utcnow().isoformat().replace("+00:00", "Z"),
        }

        if request.media:
            if request.media[0].is_video:
                record["embed"] = {
                    "$type": "app.bsky.embed.video",
                    "video": await self._upload_blob(request, request.media[0]),
                }
            else:
                images = [
                    {"alt": "", "image": await self._upload_blob(request, item)}
                    for item in request.media
                ]
                record["embed"] = {"$type": "app.bsky.embed.images", "images": images}

        payload = json_body(
            await self._request(
                "POST",
                f"{self._pds(request)}/xrpc/com.atproto.repo.createRecord",
                headers={"Authorization": f"Bearer {request.connection.access_token}"},
                json={"repo": did, "collection": "app.bsky.feed.post", "record": record},
            )
        )
        uri = payload.get("uri")
        if not uri:
            raise PermanentPublishError("InvalidResponse", "createRecord returned no uri")

        rkey = str(uri).rsplit("/", 1)[-1]
        profile = request.connection.username or did
        logger.info("Published Bluesky record %s for %s", uri, request.connection.platform_id)
        return PublishResult(
            posted_id=str(uri),
            published_url=f"https://bsky.app/profile/{profile}/post/{rkey}",
        )
