"""Workspace-managed users of an account."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from publora_engine.core.errors import InvalidTransition, NotFound, ValidationFailed
from publora_engine.core.security import Principal
from publora_engine.models import PlatformConnection, PostGroup, WorkspaceUser
from publora_engine.models.post_group import STATUS_PROCESSING
from publora_engine.repositories.post_group_repo import PostGroupRepository


class WorkspaceService:
    """CRUD for users an account manages through ``x-publora-user-id``."""

    def __init__(self, db: Session, account_id: int) -> None:
        self.db = db
        self.account_id = account_id

    def create(self, email: str, display_name: str | None = None) -> WorkspaceUser:
        email = (email or "").strip()
        if "@" not in email:
            raise ValidationFailed("A valid email is required", reason="InvalidEmail")
        user = WorkspaceUser(
            id=uuid.uuid4().hex,
            account_id=self.account_id,
            email=email,
            display_name=display_name,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def list(self) -> list[WorkspaceUser]:
        return list(
            self.db.execute(
                select(WorkspaceUser)
                .where(WorkspaceUser.account_id == self.account_id)
                .order_by(WorkspaceUser.created_at, WorkspaceUser.id)
            ).scalars()
        )

    def get(self, user_id: str) -> WorkspaceUser:
        user = self.db.get(WorkspaceUser, user_id)
        if user is None or user.account_id != self.account_id:
            raise NotFound(f"Workspace user {user_id} not found", reason="UserNotFound")
        return user

    def delete(self, user_id: str) -> None:
        """Remove the user together with their post groups and connections.

        Raises:
            InvalidTransition: One of the user's groups is being published.
        """
        user = self.get(user_id)
        group_rows = self.db.execute(
            select(PostGroup.id, PostGroup.status).where(PostGroup.workspace_user_id == user_id)
        ).all()
        if any(status == STATUS_PROCESSING for _, status in group_rows):
            raise InvalidTransition("Workspace user has posts that are currently publishing")

        owner = Principal(account_id=self.account_id, workspace_user_id=user_id)
        repo = PostGroupRepository(self.db)
        for group_id, _ in group_rows:
            repo.delete(group_id, owner)

        self.db.execute(
            delete(PlatformConnection)
            .where(PlatformConnection.workspace_user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(WorkspaceUser)
            .where(WorkspaceUser.id == user.id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if user in self.db:
            self.db.expunge(user)
