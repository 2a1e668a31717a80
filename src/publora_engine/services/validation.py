"""Request validation for create-post and update-post payloads.

Both validators are pure functions of ``(payload, now)``: they never mutate
the payload and return normalized commands or raise :class:`ValidationFailed`
with a stable reason.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from publora_engine.core.errors import ValidationFailed
from publora_engine.db.time import ensure_utc
from publora_engine.models.post_group import EDITABLE_STATUSES
from publora_engine.platforms.ids import PlatformRef, PlatformType, parse_platform_id
from publora_engine.platforms.settings import merge_platform_settings

logger = logging.getLogger(__name__)

REASON_CONTENT_REQUIRED = "ContentRequired"
REASON_PLATFORMS_REQUIRED = "PlatformsRequired"
REASON_INVALID_SCHEDULED_TIME = "InvalidScheduledTime"
REASON_INVALID_STATUS = "InvalidStatus"
REASON_INVALID_PLATFORM_SETTINGS = "InvalidPlatformSettings"

DEPRECATED_MEDIA_FIELDS = ("mediaUrls", "mediaKeys")


@dataclass(frozen=True)
class CreatePostCommand:
    content: str
    platforms: tuple[PlatformRef, ...]
    scheduled_time: datetime | None
    platform_settings: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdatePostCommand:
    scheduled_time: datetime | None = None
    status: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.scheduled_time is None and self.status is None


def parse_instant(value: object) -> datetime:
    """Parse an ISO-8601 instant; naive values are read as UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError("scheduledTime must be an ISO-8601 string")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def _validate_scheduled_time(value: object, now: datetime) -> datetime:
    try:
        instant = parse_instant(value)
    except ValueError as err:
        raise ValidationFailed(
            "scheduledTime is not a valid ISO-8601 instant",
            reason=REASON_INVALID_SCHEDULED_TIME,
        ) from err
    if instant <= ensure_utc(now):
        raise ValidationFailed(
            "scheduledTime must be in the future",
            reason=REASON_INVALID_SCHEDULED_TIME,
        )
    return instant


def _validate_platforms(value: object) -> tuple[PlatformRef, ...]:
    if not isinstance(value, list | tuple) or not value:
        raise ValidationFailed(
            "platforms must be a non-empty array",
            reason=REASON_PLATFORMS_REQUIRED,
        )
    refs: list[PlatformRef] = []
    seen: set[str] = set()
    for item in value:
        try:
            ref = parse_platform_id(item)
        except ValueError as err:
            raise ValidationFailed(str(err), reason=REASON_PLATFORMS_REQUIRED) from err
        # Ordered set: keep the first occurrence.
        if ref.platform_id in seen:
            continue
        seen.add(ref.platform_id)
        refs.append(ref)
    return tuple(refs)


def _validate_platform_settings(
    value: object,
    platforms: tuple[PlatformRef, ...],
) -> dict[str, dict[str, Any]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationFailed(
            "platformSettings must be an object",
            reason=REASON_INVALID_PLATFORM_SETTINGS,
        )
    targeted = {ref.platform for ref in platforms}
    normalized: dict[str, dict[str, Any]] = {}
    for name, overrides in value.items():
        try:
            platform = PlatformType(str(name).lower())
        except ValueError as err:
            raise ValidationFailed(
                f"unknown platform in platformSettings: {name}",
                reason=REASON_INVALID_PLATFORM_SETTINGS,
            ) from err
        if platform not in targeted:
            raise ValidationFailed(
                f"platformSettings given for untargeted platform: {name}",
                reason=REASON_INVALID_PLATFORM_SETTINGS,
            )
        if not isinstance(overrides, Mapping):
            raise ValidationFailed(
                f"platformSettings.{name} must be an object",
                reason=REASON_INVALID_PLATFORM_SETTINGS,
            )
        try:
            merge_platform_settings(platform, overrides)
        except ValueError as err:
            raise ValidationFailed(str(err), reason=REASON_INVALID_PLATFORM_SETTINGS) from err
        normalized[platform.value] = dict(overrides)
    return normalized


def validate_create(payload: Mapping[str, Any], now: datetime) -> CreatePostCommand:
    """Validate a create-post payload.

    Raises:
        ValidationFailed: ``ContentRequired``, ``PlatformsRequired``,
            ``InvalidScheduledTime`` or ``InvalidPlatformSettings``.
    """
    content = payload.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValidationFailed("content is required", reason=REASON_CONTENT_REQUIRED)

    platforms = _validate_platforms(payload.get("platforms"))

    raw_time = payload.get("scheduledTime")
    scheduled_time = None if raw_time is None else _validate_scheduled_time(raw_time, now)

    platform_settings = _validate_platform_settings(payload.get("platformSettings"), platforms)

    for deprecated in DEPRECATED_MEDIA_FIELDS:
        if deprecated in payload:
            logger.warning(
                "Ignoring deprecated field %s; upload media via get-upload-url instead",
                deprecated,
            )

    return CreatePostCommand(
        content=content,
        platforms=platforms,
        scheduled_time=scheduled_time,
        platform_settings=platform_settings,
    )


def validate_update(payload: Mapping[str, Any], now: datetime) -> UpdatePostCommand:
    """Validate an update-post payload (``scheduledTime`` and/or ``status``)."""
    raw_time = payload.get("scheduledTime")
    scheduled_time = None if raw_time is None else _validate_scheduled_time(raw_time, now)

    status = payload.get("status")
    if status is not None and status not in EDITABLE_STATUSES:
        raise ValidationFailed(
            f"status must be one of {', '.join(EDITABLE_STATUSES)}",
            reason=REASON_INVALID_STATUS,
        )
    return UpdatePostCommand(scheduled_time=scheduled_time, status=status)
