"""Data access helpers for platform connections."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from publora_engine.core.errors import NotFound
from publora_engine.core.security import Principal
from publora_engine.models import PlatformConnection

__all__ = ["ConnectionRepository"]


class ConnectionRepository:
    """Read access to connections, always scoped to an owner."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _owned(self, account_id: int, workspace_user_id: str | None):
        stmt = select(PlatformConnection).where(PlatformConnection.account_id == account_id)
        if workspace_user_id is None:
            return stmt.where(PlatformConnection.workspace_user_id.is_(None))
        return stmt.where(PlatformConnection.workspace_user_id == workspace_user_id)

    def list_for(self, principal: Principal) -> list[PlatformConnection]:
        stmt = self._owned(principal.account_id, principal.workspace_user_id).order_by(
            PlatformConnection.id
        )
        return list(self.session.execute(stmt).scalars())

    def find(
        self,
        account_id: int,
        workspace_user_id: str | None,
        platform_id: str,
    ) -> PlatformConnection | None:
        stmt = self._owned(account_id, workspace_user_id).where(
            PlatformConnection.platform_id == platform_id
        )
        return self.session.execute(stmt).scalars().first()

    def get(self, principal: Principal, platform_id: str) -> PlatformConnection:
        """Return a connection or raise ``PlatformNotFound``."""
        connection = self.find(principal.account_id, principal.workspace_user_id, platform_id)
        if connection is None:
            raise NotFound(f"Platform connection {platform_id} not found", reason="PlatformNotFound")
        return connection

    def require_all(self, principal: Principal, platform_ids: Iterable[str]) -> None:
        """Raise ``PlatformNotFound`` for the first id the principal does not own."""
        owned = {connection.platform_id for connection in self.list_for(principal)}
        for platform_id in platform_ids:
            if platform_id not in owned:
                raise NotFound(
                    f"Platform connection {platform_id} not found",
                    reason="PlatformNotFound",
                )
