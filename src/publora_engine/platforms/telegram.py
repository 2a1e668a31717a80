"""Telegram publisher using the Bot API.

The connection's access token is the bot token and its external id is the
target chat (a channel username like ``@news`` or a numeric chat id).
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
    json_body,
)
from publora_engine.platforms.ids import PlatformType

logger = logging.getLogger(__name__)


class TelegramAdapter(PlatformAdapter):
    platform = PlatformType.TELEGRAM
    limits = PlatformLimits(
        max_chars=4096,
        max_media=10,
        max_videos=10,
        mixed_media=True,
        caption_max_chars=1024,
    )

    async def _call(self, request: PublishRequest, method: str, payload: dict[str, object]) -> object:
        body = json_body(
            await self._request(
                "POST",
                f"{settings.telegram_api_base_url}/bot{request.connection.access_token}/{method}",
                json=payload,
                context=f"telegram {method}",
            )
        )
        if not body.get("ok"):
            raise PermanentPublishError(
                "TelegramRejected",
                str(body.get("description") or f"Telegram API rejected {method}"),
            )
        return body.get("result")

    async def _publish(self, request: PublishRequest) -> PublishResult:
        chat_id = request.connection.external_id
        media = request.media

        if not media:
            result = await self._call(
                request,
                "sendMessage",
                {"chat_id": chat_id, "text": request.content, "disable_web_page_preview": False},
            )
        elif len(media) == 1:
            method, field = ("sendVideo", "video") if media[0].is_video else ("sendPhoto", "photo")
            result = await self._call(
                request,
                method,
                {"chat_id": chat_id, field: media[0].url, "caption": request.content},
            )
        else:
            group = []
            for index, item in enumerate(media):
                entry = {"type": "video" if item.is_video else "photo", "media": item.url}
                if index == 0:
                    entry["caption"] = request.content
                group.append(entry)
            result = await self._call(request, "sendMediaGroup", {"chat_id": chat_id, "media": group})

        # sendMediaGroup returns a list of messages; the first one anchors the post.
        message = result[0] if isinstance(result, list) and result else result
        if not isinstance(message, dict) or "message_id" not in message:
            raise PermanentPublishError("InvalidResponse", "Telegram returned no message_id")
        message_id = str(message["message_id"])

        url = None
        handle = request.connection.username or (chat_id[1:] if chat_id.startswith("@") else None)
        if handle:
            url = f"https://t.me/{handle}/{message_id}"
        logger.info("Sent Telegram message %s for %s", message_id, request.connection.platform_id)
        return PublishResult(posted_id=message_id, published_url=url)
