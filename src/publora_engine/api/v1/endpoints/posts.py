"""Post group endpoints: create, read, update and delete."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, status

from publora_engine.api.v1.dependencies import PrincipalDep, SessionDep
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.schemas.common import SuccessResponse
from publora_engine.schemas.post import CreatePostResponse, PostGroupResponse, UpdatePostResponse
from publora_engine.services import post_service

router = APIRouter(tags=["posts"])

# Raw bodies: field-level rules and their error reasons live in the validator.
PayloadBody = Annotated[dict[str, Any], Body()]


@router.post(
    "/create-post",
    response_model=CreatePostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(payload: PayloadBody, principal: PrincipalDep, db: SessionDep) -> CreatePostResponse:
    """Create a post group, scheduled if ``scheduledTime`` is given, else a draft."""
    group = post_service.create_post(db, payload, principal)
    return CreatePostResponse(post_group_id=group.id)


@router.get("/get-post/{post_group_id}", response_model=PostGroupResponse)
async def get_post(post_group_id: str, principal: PrincipalDep, db: SessionDep) -> PostGroupResponse:
    """Return a post group with its per-platform posts and media."""
    group = PostGroupRepository(db).get(post_group_id, principal)
    return PostGroupResponse.from_model(group)


@router.put("/update-post/{post_group_id}", response_model=UpdatePostResponse)
async def update_post(
    post_group_id: str,
    payload: PayloadBody,
    principal: PrincipalDep,
    db: SessionDep,
) -> UpdatePostResponse:
    """Reschedule a post group or move it between draft and scheduled."""
    group = post_service.update_post(db, post_group_id, payload, principal)
    return UpdatePostResponse(
        post_group_id=group.id,
        status=group.status,
        scheduled_time=group.scheduled_time,
    )


@router.delete("/delete-post/{post_group_id}", response_model=SuccessResponse)
async def delete_post(post_group_id: str, principal: PrincipalDep, db: SessionDep) -> SuccessResponse:
    post_service.delete_post(db, post_group_id, principal)
    return SuccessResponse()
