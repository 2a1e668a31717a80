# mypy: ignore-errors
"""Tests for post group status aggregation."""

import pytest

from publora_engine.services.aggregator import aggregate


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        (["published"], "published"),
        (["published", "published"], "published"),
        (["failed"], "failed"),
        (["failed", "failed", "failed"], "failed"),
        (["published", "failed"], "partially_published"),
        (["failed", "published", "published"], "partially_published"),
        (["published", "processing"], "processing"),
        (["scheduled", "failed"], "processing"),
    ],
)
def test_aggregate(statuses, expected) -> None:
    assert aggregate(statuses) == expected


def test_aggregate_is_order_independent() -> None:
    assert aggregate(["failed", "published"]) == aggregate(["published", "failed"])


def test_aggregate_rejects_empty() -> None:
    with pytest.raises(ValueError):
        aggregate([])
