"""Threads publisher (Threads Graph API containers)."""

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


class ThreadsAdapter(PlatformAdapter):
    platform = PlatformType.THREADS
    limits = PlatformLimits(max_chars=500, max_media=10, max_videos=10, mixed_media=True)

    async def _container(self, request: PublishRequest, params: dict[str, str]) -> str:
        payload = json_body(
            await self._request(
                "POST",
                f"{settings.threads_api_base_url}/{request.connection.external_id}/threads",
                data={**params, "access_token": request.connection.access_token},
            )
        )
        if not payload.get("id"):
            raise PermanentPublishError("InvalidResponse", f"container creation failed: {payload}")
        return str(payload["id"])

    async def _wait(self, request: PublishRequest, container_id: str) -> None:
        async def finished() -> bool:
            payload = json_body(
                await self._request(
                    "GET",
                    f"{settings.threads_api_base_url}/{container_id}",
                    params={"fields": "status,error_message", "access_token": request.connection.access_token},
                )
            )
            if payload.get("status") == "ERROR":
                raise PermanentPublishError(
                    "MediaProcessingFailed",
                    str(payload.get("error_message") or "Threads processing error"),
                )
            return payload.get("status") in ("FINISHED", "PUBLISHED")

        await self._poll(finished, what=f"Threads container {container_id}")

    @staticmethod
    def _media_params(item: MediaItem) -> dict[str, str]:
        if item.is_video:
            return {"media_type": "VIDEO", "video_url": item.url}
        return {"media_type": "IMAGE", "image_url": item.url}

    async def _publish(self, request: PublishRequest) -> PublishResult:
        if not request.media:
            container_id = await self._container(request, {"media_type": "TEXT", "text": request.content})
        elif len(request.media) == 1:
            item = request.media[0]
            container_id = await self._container(
                request, {**self._media_params(item), "text": request.content}
            )
            if item.is_video:
                await self._wait(request, container_id)
        else:
            children = []
            for item in request.media:
                child = await self._container(
                    request, {**self._media_params(item), "is_carousel_item": "true"}
                )
                if item.is_video:
                    await self._wait(request, child)
                children.append(child)
            container_id = await self._container(
                request,
                {"media_type": "CAROUSEL", "children": ",".join(children), "text": request.content},
            )

        payload = json_body(
            await self._request(
                "POST",
                f"{settings.threads_api_base_url}/{request.connection.external_id}/threads_publish",
                data={"creation_id": container_id, "access_token": request.connection.access_token},
            )
        )
        thread_id = payload.get("id")
        if not thread_id:
            raise PermanentPublishError("InvalidResponse", f"threads_publish failed: {payload}")

        url = None
        if request.connection.username:
            url = f"https://www.threads.net/@{request.connection.username}/post/{thread_id}"
        logger.info("Published Threads post %s for %s", thread_id, request.connection.platform_id)
        return PublishResult(posted_id=str(thread_id), published_url=url)
