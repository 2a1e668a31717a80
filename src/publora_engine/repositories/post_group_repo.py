"""Data access for post groups and their per-platform posts.

Every state change that can race with the scheduler is written as a
compare-and-set ``UPDATE``/``DELETE`` guarded on the status (and, for edits,
on the version the caller read). Whichever statement commits first wins; the
loser sees ``rowcount == 0`` and backs off.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from publora_engine.core.errors import InvalidTransition, NotFound
from publora_engine.core.security import Principal
from publora_engine.db.time import utcnow
from publora_engine.models import (
    MediaAsset,
    PlatformPost,
    PostGroup,
    PostGroupIdRegistry,
    PostGroupTransition,
)
from publora_engine.models.post_group import (
    EDITABLE_STATUSES,
    STATUS_DRAFT,
    STATUS_FAILED,
    STATUS_PROCESSING,
    STATUS_SCHEDULED,
    TRANSITION_PROCESSING,
)
from publora_engine.services.aggregator import aggregate
from publora_engine.services.validation import CreatePostCommand, UpdatePostCommand

__all__ = ["PostGroupRepository"]


class PostGroupRepository:
    """Thin wrapper around database access for post groups."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- lookups ---------------------------------------------------------------

    def _select_group(self, post_group_id: str):
        return (
            select(PostGroup)
            .where(PostGroup.id == post_group_id)
            .options(selectinload(PostGroup.posts), selectinload(PostGroup.media))
            .execution_options(populate_existing=True)
        )

    def find(self, post_group_id: str) -> PostGroup | None:
        """Return a group regardless of owner (scheduler use)."""
        return self.session.execute(self._select_group(post_group_id)).scalars().first()

    def get(self, post_group_id: str, principal: Principal) -> PostGroup:
        """Return a group owned by ``principal`` or raise ``PostNotFound``."""
        stmt = self._select_group(post_group_id).where(PostGroup.account_id == principal.account_id)
        if principal.workspace_user_id is None:
            stmt = stmt.where(PostGroup.workspace_user_id.is_(None))
        else:
            stmt = stmt.where(PostGroup.workspace_user_id == principal.workspace_user_id)
        group = self.session.execute(stmt).scalars().first()
        if group is None:
            raise NotFound(f"Post group {post_group_id} not found", reason="PostNotFound")
        return group

    def count_created_since(self, account_id: int, since: datetime) -> int:
        """Count groups issued for an account since ``since``, deleted ones included."""
        return self.session.execute(
            select(func.count())
            .select_from(PostGroupIdRegistry)
            .where(
                PostGroupIdRegistry.account_id == account_id,
                PostGroupIdRegistry.issued_at >= since,
            )
        ).scalar_one()

    # -- owner operations ------------------------------------------------------

    def _issue_id(self, account_id: int) -> str:
        """Reserve a never-before-issued id in the permanent registry."""
        while True:
            candidate = uuid.uuid4().hex
            try:
                with self.session.begin_nested():
                    self.session.add(PostGroupIdRegistry(id=candidate, account_id=account_id))
                return candidate
            except IntegrityError:  # pragma: no cover - uuid4 collision
                continue

    def create(
        self,
        command: CreatePostCommand,
        principal: Principal,
        *,
        now: datetime | None = None,
    ) -> PostGroup:
        """Persist a group plus one post per platform in a single transaction."""
        now = now or utcnow()
        status = STATUS_SCHEDULED if command.scheduled_time is not None else STATUS_DRAFT
        group = PostGroup(
            id=self._issue_id(principal.account_id),
            account_id=principal.account_id,
            workspace_user_id=principal.workspace_user_id,
            content=command.content,
            platforms=[ref.platform_id for ref in command.platforms],
            platform_settings=dict(command.platform_settings),
            scheduled_time=command.scheduled_time,
            status=status,
            version=1,
            created_at=now,
            updated_at=now,
        )
        group.posts = [
            PlatformPost(
                position=index,
                platform=ref.platform.value,
                platform_id=ref.platform_id,
                status=status,
                attempts=0,
            )
            for index, ref in enumerate(command.platforms)
        ]
        self.session.add(group)
        self.session.commit()
        return self.get(group.id, principal)

    def update(
        self,
        post_group_id: str,
        command: UpdatePostCommand,
        principal: Principal,
        *,
        now: datetime | None = None,
    ) -> PostGroup:
        """Reschedule or change draft/scheduled status.

        Raises:
            NotFound: Unknown group.
            InvalidTransition: Group is processing or terminal, or it changed
                underneath us (for example the scheduler claimed it).
        """
        now = now or utcnow()
        group = self.get(post_group_id, principal)
        if group.status not in EDITABLE_STATUSES:
            raise InvalidTransition(f"Cannot update a post group in status {group.status}")

        new_status = command.status or group.status
        new_time = command.scheduled_time or group.scheduled_time
        if new_status == STATUS_SCHEDULED and new_time is None:
            # Scheduling without a time queues for the next scheduler pass.
            new_time = now

        result = self.session.execute(
            update(PostGroup)
            .where(
                PostGroup.id == post_group_id,
                PostGroup.version == group.version,
                PostGroup.status.in_(EDITABLE_STATUSES),
            )
            .values(
                status=new_status,
                scheduled_time=new_time,
                version=PostGroup.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise InvalidTransition("Post group changed concurrently; it may already be processing")

        self.session.execute(
            update(PlatformPost)
            .where(
                PlatformPost.post_group_id == post_group_id,
                PlatformPost.status.in_(EDITABLE_STATUSES),
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return self.get(post_group_id, principal)

    def delete(self, post_group_id: str, principal: Principal) -> None:
        """Delete a group with its posts and media; refused while processing."""
        group = self.get(post_group_id, principal)
        if group.status == STATUS_PROCESSING:
            raise InvalidTransition("Cannot delete a post group while it is processing")
        stale = [group, *group.posts, *group.media]

        self.session.execute(
            delete(MediaAsset)
            .where(MediaAsset.post_group_id == post_group_id)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            delete(PlatformPost)
            .where(PlatformPost.post_group_id == post_group_id)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(
            delete(PostGroup)
            .where(PostGroup.id == post_group_id, PostGroup.status != STATUS_PROCESSING)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise InvalidTransition("Post group started processing; it can no longer be deleted")
        self.session.commit()
        for obj in stale:
            if obj in self.session:
                self.session.expunge(obj)

    def lock_editable(self, post_group_id: str, now: datetime) -> bool:
        """Hold the group's row lock for the rest of the transaction.

        Touches ``updated_at`` under a draft/scheduled guard, so a concurrent
        claim or media write on the same group waits for our commit. Returns
        False when the group is gone or no longer editable.
        """
        result = self.session.execute(
            update(PostGroup)
            .where(PostGroup.id == post_group_id, PostGroup.status.in_(EDITABLE_STATUSES))
            .values(updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # -- scheduler operations --------------------------------------------------

    def list_due(self, now: datetime, limit: int) -> list[str]:
        """Return ids of scheduled groups whose time has come, oldest first."""
        return list(
            self.session.execute(
                select(PostGroup.id)
                .where(
                    PostGroup.status == STATUS_SCHEDULED,
                    PostGroup.scheduled_time <= now,
                )
                .order_by(PostGroup.scheduled_time)
                .limit(limit)
            ).scalars()
        )

    def claim_for_processing(self, post_group_id: str, now: datetime) -> bool:
        """Move a due group from scheduled to processing at most once.

        Returns True only for the single caller that wins both the status
        compare-and-set and the idempotency-key insert.
        """
        result = self.session.execute(
            update(PostGroup)
            .where(
                PostGroup.id == post_group_id,
                PostGroup.status == STATUS_SCHEDULED,
                PostGroup.scheduled_time <= now,
            )
            .values(
                status=STATUS_PROCESSING,
                processing_started_at=now,
                version=PostGroup.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            return False

        self.session.add(
            PostGroupTransition(post_group_id=post_group_id, transition=TRANSITION_PROCESSING)
        )
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            return False

        self.session.execute(
            update(PlatformPost)
            .where(PlatformPost.post_group_id == post_group_id)
            .values(status=STATUS_PROCESSING)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return True

    def record_post_result(
        self,
        post_id: int,
        *,
        status: str,
        attempts: int,
        posted_id: str | None = None,
        published_url: str | None = None,
        error: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Store a post's terminal outcome unless it was already resolved."""
        result = self.session.execute(
            update(PlatformPost)
            .where(PlatformPost.id == post_id, PlatformPost.status == STATUS_PROCESSING)
            .values(
                status=status,
                attempts=attempts,
                posted_id=posted_id,
                published_url=published_url,
                error=error,
                published_at=(now or utcnow()) if posted_id else None,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def finalize(self, post_group_id: str, *, now: datetime | None = None) -> str:
        """Recompute the group status from its posts and store it if terminal."""
        statuses = list(
            self.session.execute(
                select(PlatformPost.status).where(PlatformPost.post_group_id == post_group_id)
            ).scalars()
        )
        new_status = aggregate(statuses)
        if new_status == STATUS_PROCESSING:
            return new_status

        self.session.execute(
            update(PostGroup)
            .where(PostGroup.id == post_group_id, PostGroup.status == STATUS_PROCESSING)
            .values(
                status=new_status,
                version=PostGroup.version + 1,
                updated_at=now or utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return new_status

    def list_stuck(self, started_before: datetime, limit: int) -> list[str]:
        """Return ids of groups that have been processing since before ``started_before``."""
        return list(
            self.session.execute(
                select(PostGroup.id)
                .where(
                    PostGroup.status == STATUS_PROCESSING,
                    PostGroup.processing_started_at < started_before,
                )
                .order_by(PostGroup.processing_started_at)
                .limit(limit)
            ).scalars()
        )

    def fail_unfinished_posts(self, post_group_id: str, error: str) -> int:
        """Fail every post of a group that has not reached a terminal state."""
        result = self.session.execute(
            update(PlatformPost)
            .where(
                PlatformPost.post_group_id == post_group_id,
                PlatformPost.status == STATUS_PROCESSING,
            )
            .values(status=STATUS_FAILED, error=error)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount
