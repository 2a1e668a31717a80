"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from publora_engine.core.security import Principal
from publora_engine.db.session import get_db
from publora_engine.services.api_keys import authenticate
from publora_engine.services.linkedin import LinkedInAnalyticsClient

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_principal(
    db: SessionDep,
    x_publora_key: Annotated[str | None, Header()] = None,
    x_publora_user_id: Annotated[str | None, Header()] = None,
) -> Principal:
    """Authenticate the request from its ``x-publora-key`` header.

    ``x-publora-user-id`` narrows the principal to a workspace-managed user.

    Raises:
        AuthenticationFailed: If the key is missing, unknown or revoked.
        NotFound: If the workspace user does not belong to the account.
    """
    return authenticate(db, x_publora_key, x_publora_user_id)


def get_linkedin_client() -> LinkedInAnalyticsClient:
    """Return the LinkedIn analytics client (overridden in tests)."""
    return LinkedInAnalyticsClient()


PrincipalDep = Annotated[Principal, Depends(get_principal)]
LinkedInClientDep = Annotated[LinkedInAnalyticsClient, Depends(get_linkedin_client)]
