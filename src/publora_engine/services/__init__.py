"""Business logic services for the Publora Engine."""

from .aggregator import aggregate
from .publisher import PublishOutcome, publish_with_retry

__all__ = [
    "aggregate",
    "publish_with_retry",
    "PublishOutcome",
]
