"""Media upload broker.

Issues signed, time-limited upload targets scoped to a post group and
attaches the media once the upload is confirmed. Bytes go straight from the
client to object storage; this service only signs and records.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from publora_engine.core.errors import (
    InvalidTransition,
    MediaLimitExceeded,
    NotFound,
    ValidationFailed,
)
from publora_engine.core.security import Principal
from publora_engine.core.settings import settings
from publora_engine.db.time import utcnow
from publora_engine.models import MediaAsset, PostGroup
from publora_engine.models.media import MEDIA_STATUS_PENDING, MEDIA_STATUS_UPLOADED
from publora_engine.models.post_group import EDITABLE_STATUSES
from publora_engine.platforms.base import MediaItem, PermanentPublishError, check_media
from publora_engine.platforms.ids import PlatformType, parse_platform_id
from publora_engine.platforms.registry import get_limits
from publora_engine.repositories.post_group_repo import PostGroupRepository

logger = logging.getLogger(__name__)

TOKEN_TYPE = "media-upload"
REASON_UNSUPPORTED_MEDIA_TYPE = "UnsupportedMediaType"
REASON_INVALID_UPLOAD_TOKEN = "InvalidUploadToken"
REASON_ALREADY_CONFIRMED = "UploadAlreadyConfirmed"
REASON_MEDIA_LIMIT_EXCEEDED = "MediaLimitExceeded"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class UploadTarget:
    upload_url: str
    file_url: str
    media_id: str
    expires_at: datetime


def safe_file_name(file_name: str) -> str:
    """Reduce a client file name to a storage-safe basename."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", base).strip(".-")
    return cleaned[:120] or "upload"


def _group_platforms(group: PostGroup) -> list[PlatformType]:
    return [parse_platform_id(platform_id).platform for platform_id in group.platforms]


class MediaUploadBroker:
    """Signs upload targets and tracks :class:`MediaAsset` rows."""

    def __init__(
        self,
        session: Session,
        *,
        secret_key: str | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self.session = session
        self.secret_key = secret_key or settings.secret_key
        self.ttl = timedelta(seconds=ttl_seconds or settings.upload_url_ttl_seconds)
        self.algorithm = settings.upload_token_algorithm

    def _active_content_types(self, post_group_id: str, now: datetime) -> list[str]:
        """Content types of uploaded media plus pending targets that have not expired."""
        return list(
            self.session.execute(
                select(MediaAsset.content_type)
                .where(
                    MediaAsset.post_group_id == post_group_id,
                    or_(
                        MediaAsset.status == MEDIA_STATUS_UPLOADED,
                        MediaAsset.expires_at > now,
                    ),
                )
                .order_by(MediaAsset.created_at)
            ).scalars()
        )

    def _check_limits(self, platforms: list[PlatformType], content_types: list[str]) -> None:
        """Apply each platform's publish-time media rules to the prospective media set."""
        media = tuple(MediaItem(url="", content_type=content_type) for content_type in content_types)
        for platform in platforms:
            try:
                check_media(get_limits(platform), media)
            except PermanentPublishError as exc:
                message = f"{platform.value}: {exc.message}"
                if exc.reason == REASON_MEDIA_LIMIT_EXCEEDED:
                    raise MediaLimitExceeded(message) from exc
                raise ValidationFailed(message, reason=REASON_UNSUPPORTED_MEDIA_TYPE) from exc

    def request_upload_target(
        self,
        post_group_id: str,
        file_name: str,
        content_type: str,
        principal: Principal,
        *,
        now: datetime | None = None,
    ) -> UploadTarget:
        """Issue a pre-signed upload target for a new media item of a group.

        The group row stays locked from the limit check until the new asset
        is committed, so concurrent requests cannot both take the last slot.

        Raises:
            NotFound: ``PostNotFound`` if the group does not exist yet.
            InvalidTransition: The group is no longer draft or scheduled.
            ValidationFailed: ``UnsupportedMediaType``, including media kinds
                a platform cannot mix.
            MediaLimitExceeded: The new item would exceed a platform's media
                or video count.
        """
        now = now or utcnow()
        repo = PostGroupRepository(self.session)
        group = repo.get(post_group_id, principal)
        if group.status not in EDITABLE_STATUSES:
            raise InvalidTransition(f"Cannot attach media to a post group in status {group.status}")

        content_type = (content_type or "").strip().lower()
        if not content_type.startswith(("image/", "video/")):
            raise ValidationFailed(
                f"Unsupported content type: {content_type or 'missing'}",
                reason=REASON_UNSUPPORTED_MEDIA_TYPE,
            )

        platforms = _group_platforms(group)
        for platform in platforms:
            if not get_limits(platform).accepts(content_type):
                raise ValidationFailed(
                    f"{platform.value} does not accept {content_type}",
                    reason=REASON_UNSUPPORTED_MEDIA_TYPE,
                )

        if not repo.lock_editable(post_group_id, now):
            self.session.rollback()
            raise InvalidTransition("Post group started publishing; media can no longer be attached")
        try:
            self._check_limits(platforms, [*self._active_content_types(post_group_id, now), content_type])
        except (MediaLimitExceeded, ValidationFailed):
            self.session.rollback()
            raise

        media_id = uuid.uuid4().hex
        object_key = f"{group.account_id}/{post_group_id}/{media_id}/{safe_file_name(file_name)}"
        expires_at = now + self.ttl
        asset = MediaAsset(
            id=media_id,
            post_group_id=post_group_id,
            file_name=file_name,
            content_type=content_type,
            object_key=object_key,
            file_url=f"{settings.storage_public_base_url.rstrip('/')}/{object_key}",
            status=MEDIA_STATUS_PENDING,
            expires_at=expires_at,
            created_at=now,
        )
        self.session.add(asset)
        self.session.commit()

        token = jwt.encode(
            {
                "typ": TOKEN_TYPE,
                "sub": media_id,
                "grp": post_group_id,
                "key": object_key,
                "iat": int(now.timestamp()),
                "exp": int(expires_at.timestamp()),
            },
            self.secret_key,
            algorithm=self.algorithm,
        )
        logger.info("Issued upload target %s for post group %s", media_id, post_group_id)
        return UploadTarget(
            upload_url=f"{settings.storage_upload_base_url.rstrip('/')}/{object_key}?token={token}",
            file_url=asset.file_url,
            media_id=media_id,
            expires_at=expires_at,
        )

    def decode_token(self, token: str) -> dict[str, object]:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise ValidationFailed("Upload token has expired", reason=REASON_INVALID_UPLOAD_TOKEN) from exc
        except JWTError as exc:
            raise ValidationFailed("Upload token is invalid", reason=REASON_INVALID_UPLOAD_TOKEN) from exc
        if claims.get("typ") != TOKEN_TYPE or not claims.get("sub"):
            raise ValidationFailed("Upload token is invalid", reason=REASON_INVALID_UPLOAD_TOKEN)
        return claims

    def confirm_upload(self, token: str, *, now: datetime | None = None) -> MediaAsset:
        """Mark the media behind ``token`` as uploaded, exactly once.

        Raises:
            ValidationFailed: ``InvalidUploadToken``.
            NotFound: ``MediaNotFound`` if the asset was deleted with its group.
            InvalidTransition: ``UploadAlreadyConfirmed`` on reuse, or the
                group already started publishing.
        """
        now = now or utcnow()
        claims = self.decode_token(token)
        media_id = str(claims["sub"])

        asset = self.session.get(MediaAsset, media_id, populate_existing=True)
        if asset is None:
            raise NotFound(f"Media {media_id} not found", reason="MediaNotFound")
        if asset.status == MEDIA_STATUS_UPLOADED:
            raise InvalidTransition("Upload was already confirmed", reason=REASON_ALREADY_CONFIRMED)

        # Locks the group row so the scheduler cannot claim it mid-confirm.
        if not PostGroupRepository(self.session).lock_editable(asset.post_group_id, now):
            self.session.rollback()
            raise InvalidTransition("Cannot attach media to a post group that is no longer editable")

        result = self.session.execute(
            update(MediaAsset)
            .where(MediaAsset.id == media_id, MediaAsset.status == MEDIA_STATUS_PENDING)
            .values(status=MEDIA_STATUS_UPLOADED, uploaded_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise InvalidTransition("Upload was already confirmed", reason=REASON_ALREADY_CONFIRMED)
        self.session.commit()

        logger.info("Media %s attached to post group %s", media_id, asset.post_group_id)
        return self.session.get(MediaAsset, media_id, populate_existing=True)
