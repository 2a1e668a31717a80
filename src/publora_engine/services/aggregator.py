"""Roll per-platform post outcomes up into a post group status."""

from __future__ import annotations

from collections.abc import Iterable

from publora_engine.models.post_group import (
    STATUS_FAILED,
    STATUS_PARTIALLY_PUBLISHED,
    STATUS_PROCESSING,
    STATUS_PUBLISHED,
)


def aggregate(statuses: Iterable[str]) -> str:
    """Return the group status implied by its posts' statuses.

    The group only finalizes once every post is terminal; until then it stays
    ``processing``.

    Raises:
        ValueError: If no statuses are given.
    """
    values = list(statuses)
    if not values:
        raise ValueError("cannot aggregate an empty post list")

    if any(value not in (STATUS_PUBLISHED, STATUS_FAILED) for value in values):
        return STATUS_PROCESSING
    if all(value == STATUS_PUBLISHED for value in values):
        return STATUS_PUBLISHED
    if all(value == STATUS_FAILED for value in values):
        return STATUS_FAILED
    return STATUS_PARTIALLY_PUBLISHED
