"""LinkedIn publisher using the versioned Posts, Images and Videos APIs."""

from __future__ import annotations

import logging
from urllib.parse import quote

from publora_engine.core.settings import settings
from publora_engine.platforms.base import (
    ConnectionInfo,
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


def linkedin_headers(access_token: str) -> dict[str, str]:
    """Headers required by every versioned ``/rest`` call."""
    return {
        "Authorization": f"Bearer {access_token}",
        "LinkedIn-Version": settings.linkedin_api_version,
        "X-Restli-Protocol-Version": "2.0.0",
    }


def author_urn(connection: ConnectionInfo) -> str:
    """Return the member (or organization) URN posts are authored as."""
    urn = connection.extra.get("author_urn")
    if urn:
        return str(urn)
    return f"urn:li:person:{connection.external_id}"


def post_url(post_urn: str) -> str:
    return f"https://www.linkedin.com/feed/update/{quote(post_urn, safe=':')}"


class LinkedInAdapter(PlatformAdapter):
    platform = PlatformType.LINKEDIN
    limits = PlatformLimits(max_chars=3000, max_media=20, max_videos=1)

    async def _upload_image(self, request: PublishRequest, item: MediaItem) -> str:
        base = settings.linkedin_api_base_url
        headers = linkedin_headers(request.connection.access_token)
        init = json_body(
            await self._request(
                "POST",
                f"{base}/rest/images?action=initializeUpload",
                headers=headers,
                json={"initializeUploadRequest": {"owner": author_urn(request.connection)}},
            )
        )
        value = init.get("value") or {}
        upload_url, image_urn = value.get("uploadUrl"), value.get("image")
        if not upload_url or not image_urn:
            raise PermanentPublishError("InvalidResponse", "image upload was not initialized")

        data = await self._download(item)
        await self._request(
            "PUT",
            upload_url,
            headers={"Authorization": headers["Authorization"]},
            content=data,
        )
        return str(image_urn)

    async def _upload_video(self, request: PublishRequest, item: MediaItem) -> str:
        base = settings.linkedin_api_base_url
        headers = linkedin_headers(request.connection.access_token)
        data = await self._download(item)
        init = json_body(
            await self._request(
                "POST",
                f"{base}/rest/videos?action=initializeUpload",
                headers=headers,
                json={
                    "initializeUploadRequest": {
                        "owner": author_urn(request.connection),
                        "fileSizeBytes": len(data),
                        "uploadCaptions": False,
                        "uploadThumbnail": False,
                    }
                },
            )
        )
        value = init.get("value") or {}
        video_urn = value.get("video")
        instructions = value.get("uploadInstructions") or []
        if not video_urn or not instructions:
            raise PermanentPublishError("InvalidResponse", "video upload was not initialized")

        etags: list[str] = []
        for part in instructions:
            first, last = int(part["firstByte"]), int(part["lastByte"])
            response = await self._request(
                "PUT",
                part["uploadUrl"],
                headers={"Authorization": headers["Authorization"]},
                content=data[first : last + 1],
            )
            etags.append(response.headers.get("etag", ""))

        await self._request(
            "POST",
            f"{base}/rest/videos?action=finalizeUpload",
            headers=headers,
            json={
                "finalizeUploadRequest": {
                    "video": video_urn,
                    "uploadToken": value.get("uploadToken", ""),
                    "uploadedPartIds": etags,
                }
            },
        )
        return str(video_urn)

    async def _publish(self, request: PublishRequest) -> PublishResult:
        body: dict[str, object] = {
            "author": author_urn(request.connection),
            "commentary": request.content,
            "visibility": "PUBLIC",
            "distribution": {
                "feedDistribution": "MAIN_FEED",
                "targetEntities": [],
                "thirdPartyDistributionChannels": [],
            },
            "lifecycleState": "PUBLISHED",
            "isReshareDisabledByAuthor": False,
        }

        if request.media:
            if request.media[0].is_video:
                body["content"] = {"media": {"id": await self._upload_video(request, request.media[0])}}
            else:
                urns = [await self._upload_image(request, item) for item in request.media]
                if len(urns) == 1:
                    body["content"] = {"media": {"id": urns[0]}}
                else:
                    body["content"] = {"multiImage": {"images": [{"id": urn} for urn in urns]}}

        response = await self._request(
            "POST",
            f"{settings.linkedin_api_base_url}/rest/posts",
            headers=linkedin_headers(request.connection.access_token),
            json=body,
        )
        post_urn = response.headers.get("x-restli-id")
        if not post_urn:
            raise PermanentPublishError("InvalidResponse", "post create returned no x-restli-id")

        logger.info("Published LinkedIn post %s for %s", post_urn, request.connection.platform_id)
        return PublishResult(posted_id=post_urn, published_url=post_url(post_urn))
