"""API key helpers and the authenticated principal."""
from __future__ import annotations

import secrets
from dataclasses import dataclass

from blake3 import blake3

from publora_engine.core.settings import settings


@dataclass(frozen=True)
class Principal:
    """Who a request acts for: an account, optionally narrowed to a workspace user."""

    account_id: int
    workspace_user_id: str | None = None


def hash_api_key(api_key: str) -> str:
    """Return the hex BLAKE3 digest stored in place of the raw key."""
    return blake3(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    """Return a fresh ``sk_``-prefixed key suitable for handing to a client."""
    return f"{settings.api_key_prefix}{secrets.token_urlsafe(32)}"
