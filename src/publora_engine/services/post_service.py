"""Post group use cases used by the HTTP layer."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from publora_engine.core.errors import ValidationFailed
from publora_engine.core.security import Principal
from publora_engine.db.time import utcnow
from publora_engine.models import PostGroup
from publora_engine.repositories.connection_repo import ConnectionRepository
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.services.api_keys import ensure_can_create_post
from publora_engine.services.validation import validate_create, validate_update

logger = logging.getLogger(__name__)


def create_post(
    db: Session,
    payload: Mapping[str, Any],
    principal: Principal,
    *,
    now: datetime | None = None,
) -> PostGroup:
    """Validate, check plan limits and connections, then persist a new group."""
    now = now or utcnow()
    command = validate_create(payload, now)
    ensure_can_create_post(db, principal, now)
    ConnectionRepository(db).require_all(principal, (ref.platform_id for ref in command.platforms))

    group = PostGroupRepository(db).create(command, principal, now=now)
    logger.info(
        "Created post group %s (%s) for %d platforms",
        group.id,
        group.status,
        len(group.posts),
    )
    return group


def update_post(
    db: Session,
    post_group_id: str,
    payload: Mapping[str, Any],
    principal: Principal,
    *,
    now: datetime | None = None,
) -> PostGroup:
    now = now or utcnow()
    command = validate_update(payload, now)
    if command.is_empty:
        raise ValidationFailed("Provide scheduledTime and/or status", reason="NothingToUpdate")
    group = PostGroupRepository(db).update(post_group_id, command, principal, now=now)
    logger.info("Updated post group %s: status=%s", group.id, group.status)
    return group


def delete_post(db: Session, post_group_id: str, principal: Principal) -> None:
    PostGroupRepository(db).delete(post_group_id, principal)
    logger.info("Deleted post group %s", post_group_id)
