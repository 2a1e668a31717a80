"""TikTok publisher using the Content Posting API with ``PULL_FROM_URL``.

TikTok downloads the media from our public file URLs itself, so no bytes
pass through this service. A video post and a photo carousel use different
init endpoints.
"""

from __future__ import annotations

import logging

from publora_engine.core.settings import settings
from publora_engine.platforms.base import (
    PermanentPublishError,
    PlatformAdapter,
    PlatformLimits,
    PublishRequest,
    PublishResult,
    TransientPublishError,
    json_body,
)
from publora_engine.platforms.ids import PlatformType
from publora_engine.platforms.settings import TikTokSettings

logger = logging.getLogger(__name__)

TRANSIENT_ERROR_CODES = ("rate_limit_exceeded", "internal_error")


class TikTokAdapter(PlatformAdapter):
    platform = PlatformType.TIKTOK
    limits = PlatformLimits(max_chars=2200, max_media=35, max_videos=1, media_required=True)

    @staticmethod
    def _post_info(text: str, options: TikTokSettings) -> dict[str, object]:
        return {
            "title": text,
            "privacy_level": options.privacy_level,
            "disable_comment": not options.allow_comments,
            "disable_duet": not options.allow_duet,
            "disable_stitch": not options.allow_stitch,
        }

    async def _publish(self, request: PublishRequest) -> PublishResult:
        options = request.settings if isinstance(request.settings, TikTokSettings) else TikTokSettings()
        base = settings.tiktok_api_base_url

        if request.media[0].is_video:
            url = f"{base}/v2/post/publish/video/init/"
            body: dict[str, object] = {
                "post_info": self._post_info(request.content, options),
                "source_info": {"source": "PULL_FROM_URL", "video_url": request.media[0].url},
            }
        else:
            url = f"{base}/v2/post/publish/content/init/"
            body = {
                "post_info": self._post_info(request.content, options),
                "source_info": {
                    "source": "PULL_FROM_URL",
                    "photo_cover_index": 0,
                    "photo_images": [item.url for item in request.media],
                },
                "post_mode": "DIRECT_POST",
                "media_type": "PHOTO",
            }

        payload = json_body(
            await self._request(
                "POST",
                url,
                headers={
                    "Authorization": f"Bearer {request.connection.access_token}",
                    "Content-Type": "application/json; charset=UTF-8",
                },
                json=body,
            )
        )

        # TikTok reports success inside the error object with code "ok".
        error = payload.get("error") or {}
        code = error.get("code", "ok")
        if code != "ok":
            message = error.get("message") or code
            if code in TRANSIENT_ERROR_CODES:
                raise TransientPublishError(code, message)
            raise PermanentPublishError(code, message)

        publish_id = (payload.get("data") or {}).get("publish_id")
        if not publish_id:
            raise PermanentPublishError("InvalidResponse", "TikTok returned no publish_id")
        logger.info("Submitted TikTok post %s for %s", publish_id, request.connection.platform_id)
        # The public URL only exists once TikTok finishes moderation.
        return PublishResult(posted_id=str(publish_id), published_url=None)
