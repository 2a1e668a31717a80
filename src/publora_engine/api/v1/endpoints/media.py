"""Media upload endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from publora_engine.api.v1.dependencies import PrincipalDep, SessionDep
from publora_engine.schemas.media import (
    ConfirmUploadRequest,
    ConfirmUploadResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from publora_engine.services.media import MediaUploadBroker

router = APIRouter(tags=["media"])


@router.post("/get-upload-url", response_model=UploadUrlResponse)
async def get_upload_url(body: UploadUrlRequest, principal: PrincipalDep, db: SessionDep) -> UploadUrlResponse:
    """Issue a pre-signed upload target; the post group must be created first."""
    target = MediaUploadBroker(db).request_upload_target(
        body.post_group_id,
        body.file_name,
        body.content_type,
        principal,
    )
    return UploadUrlResponse(
        upload_url=target.upload_url,
        file_url=target.file_url,
        media_id=target.media_id,
        expires_at=target.expires_at,
    )


@router.post("/confirm-upload", response_model=ConfirmUploadResponse)
async def confirm_upload(
    body: ConfirmUploadRequest,
    principal: PrincipalDep,
    db: SessionDep,
) -> ConfirmUploadResponse:
    """Attach uploaded media to its post group (storage callback or client)."""
    asset = MediaUploadBroker(db).confirm_upload(body.token)
    return ConfirmUploadResponse(
        media_id=asset.id,
        post_group_id=asset.post_group_id,
        file_url=asset.file_url,
    )
