"""API key authentication, account provisioning and plan enforcement."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from publora_engine.core.errors import AuthenticationFailed, NotFound, PermissionDenied
from publora_engine.core.security import Principal, generate_api_key, hash_api_key
from publora_engine.core.settings import settings
from publora_engine.db.time import utcnow
from publora_engine.models import Account, ApiKey, WorkspaceUser
from publora_engine.repositories.post_group_repo import PostGroupRepository

logger = logging.getLogger(__name__)


def create_account(
    db: Session,
    name: str,
    *,
    monthly_post_limit: int | None = None,
    label: str | None = None,
) -> tuple[Account, str]:
    """Create an account with one API key; the raw key is only returned here."""
    account = Account(name=name, subscription_active=True, monthly_post_limit=monthly_post_limit)
    db.add(account)
    db.flush()
    raw_key = issue_api_key(db, account, label=label)
    return account, raw_key


def issue_api_key(db: Session, account: Account, *, label: str | None = None) -> str:
    raw_key = generate_api_key()
    db.add(ApiKey(account_id=account.id, key_hash=hash_api_key(raw_key), label=label))
    db.commit()
    return raw_key


def authenticate(db: Session, raw_key: str | None, workspace_user_id: str | None = None) -> Principal:
    """Resolve request headers to a :class:`Principal`.

    Raises:
        AuthenticationFailed: Missing, malformed, unknown or revoked key.
        NotFound: ``UserNotFound`` if the workspace user is not the account's.
    """
    if not raw_key or not raw_key.startswith(settings.api_key_prefix):
        raise AuthenticationFailed("Missing or malformed x-publora-key header")

    api_key = db.execute(
        select(ApiKey).where(ApiKey.key_hash == hash_api_key(raw_key))
    ).scalar_one_or_none()
    if api_key is None or api_key.revoked:
        raise AuthenticationFailed("Invalid API key")

    if workspace_user_id:
        user = db.get(WorkspaceUser, workspace_user_id)
        if user is None or user.account_id != api_key.account_id:
            raise NotFound(f"Workspace user {workspace_user_id} not found", reason="UserNotFound")

    return Principal(account_id=api_key.account_id, workspace_user_id=workspace_user_id or None)


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def ensure_can_create_post(db: Session, principal: Principal, now: datetime | None = None) -> None:
    """Check the account's subscription and monthly post quota.

    Raises:
        PermissionDenied: ``SubscriptionRequired`` or ``PostLimitReached``.
    """
    account = db.get(Account, principal.account_id)
    if account is None or not account.subscription_active:
        raise PermissionDenied("An active subscription is required to create posts")

    if account.monthly_post_limit is None:
        return
    used = PostGroupRepository(db).count_created_since(account.id, month_start(now or utcnow()))
    if used >= account.monthly_post_limit:
        logger.info("Account %s reached its monthly post limit (%d)", account.id, used)
        raise PermissionDenied(
            f"Monthly limit of {account.monthly_post_limit} posts reached",
            reason="PostLimitReached",
        )
