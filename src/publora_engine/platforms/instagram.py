"""Instagram publisher using the Graph API container flow.

Publishing is three steps: create a media container (or one per carousel
item plus a carousel container), wait for Meta to pull and process the
media, then publish the container.
"""

from __future__ import annotations

import logging

from publora_engine.core.settings import settings
from publora_engine.platforms.base import (
    MediaItem,
    PermanentPublishError,
    PlatformAdapter,
    PlatformLimits,
    PublishError,
    PublishRequest,
    PublishResult,
    json_body,
)
from publora_engine.platforms.ids import PlatformType
from publora_engine.platforms.settings import InstagramSettings

logger = logging.getLogger(__name__)


class InstagramAdapter(PlatformAdapter):
    platform = PlatformType.INSTAGRAM
    limits = PlatformLimits(
        max_chars=2200,
        max_media=10,
        max_videos=10,
        media_required=True,
        mixed_media=True,
    )

    async def _create_container(self, request: PublishRequest, params: dict[str, str]) -> str:
        payload = json_body(
            await self._request(
                "POST",
                f"{settings.meta_graph_base_url}/{request.connection.external_id}/media",
                data={**params, "access_token": request.connection.access_token},
            )
        )
        container_id = payload.get("id")
        if not container_id:
            raise PermanentPublishError("InvalidResponse", f"container creation failed: {payload}")
        logger.debug("Instagram container created: %s", container_id)
        return str(container_id)

    def _item_params(self, item: MediaItem, options: InstagramSettings, *, carousel: bool) -> dict[str, str]:
        if item.is_video:
            params = {
                "media_type": "VIDEO" if carousel else options.media_type,
                "video_url": item.url,
            }
        else:
            params = {"image_url": item.url}
            if options.media_type == "STORIES" and not carousel:
                params["media_type"] = "STORIES"
        if carousel:
            params["is_carousel_item"] = "true"
        return params

    async def _wait_for_container(self, request: PublishRequest, container_id: str) -> None:
        async def finished() -> bool:
            payload = json_body(
                await self._request(
                    "GET",
                    f"{settings.meta_graph_base_url}/{container_id}",
                    params={"fields": "status_code", "access_token": request.connection.access_token},
                )
            )
            status = payload.get("status_code")
            if status == "ERROR":
                raise PermanentPublishError("MediaProcessingFailed", f"Meta processing error: {payload}")
            return status in ("FINISHED", "PUBLISHED")

        await self._poll(finished, what=f"Instagram container {container_id}")

    async def _publish(self, request: PublishRequest) -> PublishResult:
        options = request.settings if isinstance(request.settings, InstagramSettings) else InstagramSettings()

        if len(request.media) == 1:
            item = request.media[0]
            params = self._item_params(item, options, carousel=False)
            if options.media_type != "STORIES":
                params["caption"] = request.content
            container_id = await self._create_container(request, params)
            if item.is_video:
                await self._wait_for_container(request, container_id)
        else:
            children = []
            for item in request.media:
                child = await self._create_container(
                    request, self._item_params(item, options, carousel=True)
                )
                if item.is_video:
                    await self._wait_for_container(request, child)
                children.append(child)
            container_id = await self._create_container(
                request,
                {"media_type": "CAROUSEL", "children": ",".join(children), "caption": request.content},
            )
            await self._wait_for_container(request, container_id)

        published = json_body(
            await self._request(
                "POST",
                f"{settings.meta_graph_base_url}/{request.connection.external_id}/media_publish",
                data={"creation_id": container_id, "access_token": request.connection.access_token},
            )
        )
        media_id = published.get("id")
        if not media_id:
            raise PermanentPublishError("InvalidResponse", f"media_publish failed: {published}")

        # Already published: the permalink is best effort.
        permalink = None
        try:
            permalink = json_body(
                await self._request(
                    "GET",
                    f"{settings.meta_graph_base_url}/{media_id}",
                    params={"fields": "permalink", "access_token": request.connection.access_token},
                )
            ).get("permalink")
        except PublishError as exc:
            logger.warning("Permalink lookup for Instagram media %s failed: %s", media_id, exc)
        logger.info("Published Instagram media %s for %s", media_id, request.connection.platform_id)
        return PublishResult(posted_id=str(media_id), published_url=permalink)
