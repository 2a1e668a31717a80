"""Workspace user management."""

from __future__ import annotations

from fastapi import APIRouter, status
from sqlalchemy.orm import Session

from publora_engine.api.v1.dependencies import PrincipalDep, SessionDep
from publora_engine.core.errors import PermissionDenied
from publora_engine.core.security import Principal
from publora_engine.schemas.common import SuccessResponse
from publora_engine.schemas.workspace import (
    WorkspaceUserCreate,
    WorkspaceUserListResponse,
    WorkspaceUserResponse,
)
from publora_engine.services.workspace import WorkspaceService

router = APIRouter(prefix="/workspace", tags=["workspace"])


def _service(db: Session, principal: Principal) -> WorkspaceService:
    if principal.workspace_user_id is not None:
        raise PermissionDenied(
            "Workspace users cannot manage other users",
            reason="WorkspaceOwnerRequired",
        )
    return WorkspaceService(db, principal.account_id)


@router.post("/users", response_model=WorkspaceUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: WorkspaceUserCreate,
    principal: PrincipalDep,
    db: SessionDep,
) -> WorkspaceUserResponse:
    user = _service(db, principal).create(body.email, body.display_name)
    return WorkspaceUserResponse.model_validate(user)


@router.get("/users", response_model=WorkspaceUserListResponse)
async def list_users(principal: PrincipalDep, db: SessionDep) -> WorkspaceUserListResponse:
    users = _service(db, principal).list()
    return WorkspaceUserListResponse(users=[WorkspaceUserResponse.model_validate(user) for user in users])


@router.get("/users/{user_id}", response_model=WorkspaceUserResponse)
async def get_user(user_id: str, principal: PrincipalDep, db: SessionDep) -> WorkspaceUserResponse:
    return WorkspaceUserResponse.model_validate(_service(db, principal).get(user_id))


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(user_id: str, principal: PrincipalDep, db: SessionDep) -> SuccessResponse:
    """Delete a workspace user with their posts and connections."""
    _service(db, principal).delete(user_id)
    return SuccessResponse()
