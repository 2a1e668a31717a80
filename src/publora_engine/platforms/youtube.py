"""YouTube publisher using the Data API v3 resumable upload protocol."""

from __future__ import annotations

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
from publora_engine.platforms.settings import YouTubeSettings

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100


def derive_title(text: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """Build a video title from the first line or sentence of ``text``."""
    if not text.strip():
        return "Untitled video"

    first_line = text.strip().split("\n")[0].strip()
    first_sentence = first_line.split(". ")[0].strip()
    title = first_sentence or first_line

    if len(title) > max_length:
        title = title[: max_length - 3].strip() + "..."
    return title or "Untitled video"


class YouTubeAdapter(PlatformAdapter):
    platform = PlatformType.YOUTUBE
    limits = PlatformLimits(
        max_chars=5000,
        max_media=1,
        max_videos=1,
        allows_images=False,
        media_required=True,
    )

    async def _publish(self, request: PublishRequest) -> PublishResult:
        options = request.settings if isinstance(request.settings, YouTubeSettings) else YouTubeSettings()
        video = request.media[0]
        auth = {"Authorization": f"Bearer {request.connection.access_token}"}

        data = await self._download(video)
        session = await self._request(
            "POST",
            f"{settings.youtube_upload_base_url}/videos",
            params={"uploadType": "resumable", "part": "snippet,status"},
            headers={
                **auth,
                "X-Upload-Content-Type": video.content_type,
                "X-Upload-Content-Length": str(len(data)),
            },
            json={
                "snippet": {
                    "title": options.title or derive_title(request.content),
                    "description": request.content,
                },
                "status": {"privacyStatus": options.privacy, "selfDeclaredMadeForKids": False},
            },
        )
        upload_url = session.headers.get("location")
        if not upload_url:
            raise PermanentPublishError("InvalidResponse", "resumable session returned no Location")

        payload = json_body(
            await self._request(
                "PUT",
                upload_url,
                headers={**auth, "Content-Type": video.content_type},
                content=data,
            )
        )
        video_id = payload.get("id")
        if not video_id:
            raise PermanentPublishError("InvalidResponse", "upload returned no video id")

        logger.info("Uploaded YouTube video %s for %s", video_id, request.connection.platform_id)
        return PublishResult(
            posted_id=str(video_id),
            published_url=f"https://www.youtube.com/watch?v={video_id}",
        )
