"""X (Twitter) publisher using the v2 tweets and media upload endpoints."""

from __future__ import annotations

import logging

from publora_engine.core.settings import settings
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

# Media is sent in 4 MB segments through the chunked upload commands.
CHUNK_SIZE = 4 * 1024 * 1024


class TwitterAdapter(PlatformAdapter):
    platform = PlatformType.TWITTER
    limits = PlatformLimits(max_chars=280, max_media=4, max_videos=1)

    def _headers(self, request: PublishRequest) -> dict[str, str]:
        return {"Authorization": f"Bearer {request.connection.access_token}"}

    async def _upload_media(self, request: PublishRequest, item: MediaItem) -> str:
        """Upload one media item via INIT/APPEND/FINALIZE and return its id."""
        url = f"{settings.twitter_api_base_url}/2/media/upload"
        data = await self._download(item)
        category = "tweet_video" if item.is_video else "tweet_image"

        init = json_body(
            await self._request(
                "POST",
                url,
                headers=self._headers(request),
                data={
                    "command": "INIT",
                    "total_bytes": str(len(data)),
                    "media_type": item.content_type,
                    "media_category": category,
                },
            )
        )
        media_id = str(init.get("data", {}).get("id") or init.get("media_id_string") or "")
        if not media_id:
            raise PermanentPublishError("InvalidResponse", "media INIT returned no id")

        for index, start in enumerate(range(0, len(data), CHUNK_SIZE)):
            await self._request(
                "POST",
                url,
                headers=self._headers(request),
                data={"command": "APPEND", "media_id": media_id, "segment_index": str(index)},
                files={"media": (item.file_name or "media", data[start : start + CHUNK_SIZE])},
            )

        finalize = json_body(
            await self._request(
                "POST",
                url,
                headers=self._headers(request),
                data={"command": "FINALIZE", "media_id": media_id},
            )
        )
        processing = (finalize.get("data") or finalize).get("processing_info")
        if processing:
            await self._wait_for_media(request, media_id)
        return media_id

    async def _wait_for_media(self, request: PublishRequest, media_id: str) -> None:
        url = f"{settings.twitter_api_base_url}/2/media/upload"

        async def ready() -> bool:
            status = json_body(
                await self._request(
                    "GET",
                    url,
                    headers=self._headers(request),
                    params={"command": "STATUS", "media_id": media_id},
                )
            )
            info = (status.get("data") or status).get("processing_info") or {}
            state = info.get("state", "succeeded")
            if state == "failed":
                raise PermanentPublishError(
                    "MediaProcessingFailed",
                    str(info.get("error", {}).get("message", "media processing failed")),
                )
            return state == "succeeded"

        await self._poll(ready, what=f"X media {media_id}")

    async def _publish(self, request: PublishRequest) -> PublishResult:
        media_ids = [await self._upload_media(request, item) for item in request.media]
        body: dict[str, object] = {"text": request.content}
        if media_ids:
            body["media"] = {"media_ids": media_ids}

        payload = json_body(
            await self._request(
                "POST",
                f"{settings.twitter_api_base_url}/2/tweets",
                headers=self._headers(request),
                json=body,
            )
        )
        tweet_id = str(payload.get("data", {}).get("id") or "")
        if not tweet_id:
            raise PermanentPublishError("InvalidResponse", "tweet create returned no id")

        handle = request.connection.username or "i"
        logger.info("Published tweet %s for %s", tweet_id, request.connection.platform_id)
        return PublishResult(posted_id=tweet_id, published_url=f"https://x.com/{handle}/status/{tweet_id}")
