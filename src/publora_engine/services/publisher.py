"""Retry and backoff around a single platform adapter call."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from publora_engine.core.settings import settings
from publora_engine.models.post_group import STATUS_FAILED, STATUS_PUBLISHED
from publora_engine.platforms.base import (
    PermanentPublishError,
    PlatformAdapter,
    PublishRequest,
    Sleeper,
    TransientPublishError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishOutcome:
    """Terminal result of publishing one platform post."""

    status: str
    attempts: int
    posted_id: str | None = None
    published_url: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_PUBLISHED


def backoff_delay(attempt: int, base: float, ceiling: float) -> float:
    """Delay before retry number ``attempt`` (1-based): ``base * 2**(attempt-1)`` capped."""
    return min(ceiling, base * (2 ** (attempt - 1)))


async def publish_with_retry(
    adapter: PlatformAdapter,
    request: PublishRequest,
    *,
    max_attempts: int | None = None,
    backoff_base: float | None = None,
    backoff_max: float | None = None,
    sleep: Sleeper | None = None,
) -> PublishOutcome:
    """Publish ``request`` and never raise.

    Transient failures are retried with exponential backoff up to
    ``max_attempts`` calls; permanent failures stop immediately.
    """
    max_attempts = max(1, max_attempts or settings.publish_max_attempts)
    backoff_base = settings.publish_backoff_base_seconds if backoff_base is None else backoff_base
    backoff_max = settings.publish_backoff_max_seconds if backoff_max is None else backoff_max
    sleep = sleep or asyncio.sleep
    platform_id = request.connection.platform_id

    attempt = 0
    while True:
        attempt += 1
        try:
            result = await adapter.publish(request)
        except PermanentPublishError as exc:
            logger.warning("Publishing to %s failed permanently: %s", platform_id, exc)
            return PublishOutcome(status=STATUS_FAILED, attempts=attempt, error=str(exc))
        except TransientPublishError as exc:
            if attempt >= max_attempts:
                logger.warning(
                    "Publishing to %s failed after %d attempts: %s", platform_id, attempt, exc
                )
                return PublishOutcome(status=STATUS_FAILED, attempts=attempt, error=str(exc))
            delay = backoff_delay(attempt, backoff_base, backoff_max)
            logger.info(
                "Transient failure publishing to %s (attempt %d/%d), retrying in %.1fs: %s",
                platform_id,
                attempt,
                max_attempts,
                delay,
                exc,
            )
            await sleep(delay)
            continue
        except Exception as exc:
            logger.exception("Unexpected error publishing to %s", platform_id)
            return PublishOutcome(
                status=STATUS_FAILED,
                attempts=attempt,
                error=f"InternalError: {exc}",
            )

        return PublishOutcome(
            status=STATUS_PUBLISHED,
            attempts=attempt,
            posted_id=result.posted_id,
            published_url=result.published_url,
        )
