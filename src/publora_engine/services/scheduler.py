"""Background scheduler that publishes post groups when they fall due.

The worker polls the store, claims each due group exactly once, publishes
its platform posts concurrently through the adapters and resolves the
group status with the aggregator. A watchdog pass fails groups that have
been stuck in ``processing`` past the configured ceiling.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from publora_engine.core.settings import settings
from publora_engine.db.session import SessionLocal
from publora_engine.db.time import utcnow
from publora_engine.models import PostGroup
from publora_engine.models.media import MEDIA_STATUS_UPLOADED
from publora_engine.models.post_group import STATUS_FAILED
from publora_engine.platforms.base import (
    ConnectionInfo,
    MediaItem,
    PlatformAdapter,
    PublishRequest,
    Sleeper,
)
from publora_engine.platforms.ids import PlatformType
from publora_engine.platforms.registry import get_adapter
from publora_engine.platforms.settings import merge_platform_settings
from publora_engine.repositories.connection_repo import ConnectionRepository
from publora_engine.repositories.post_group_repo import PostGroupRepository
from publora_engine.services.publisher import PublishOutcome, publish_with_retry

logger = logging.getLogger(__name__)

PROCESSING_TIMEOUT_ERROR = "ProcessingTimeout"

SessionFactory = Callable[[], AbstractContextManager[Session]]
AdapterFactory = Callable[[PlatformType], PlatformAdapter]


@dataclass(frozen=True)
class PublishJob:
    """One platform post of a claimed group, ready to publish or already doomed."""

    post_id: int
    platform: PlatformType
    request: PublishRequest | None = None
    error: str | None = None


def build_jobs(db: Session, group: PostGroup) -> list[PublishJob]:
    """Resolve connections, uploaded media and settings for every post of ``group``."""
    connections = ConnectionRepository(db)
    media = tuple(
        MediaItem(url=asset.file_url, content_type=asset.content_type, file_name=asset.file_name)
        for asset in group.media
        if asset.status == MEDIA_STATUS_UPLOADED
    )

    jobs: list[PublishJob] = []
    for post in group.posts:
        platform = PlatformType(post.platform)
        connection = connections.find(group.account_id, group.workspace_user_id, post.platform_id)
        if connection is None:
            jobs.append(
                PublishJob(
                    post_id=post.id,
                    platform=platform,
                    error=f"PlatformNotFound: connection {post.platform_id} no longer exists",
                )
            )
            continue
        try:
            options = merge_platform_settings(
                platform, (group.platform_settings or {}).get(platform.value)
            )
        except ValueError as exc:
            jobs.append(
                PublishJob(post_id=post.id, platform=platform, error=f"InvalidPlatformSettings: {exc}")
            )
            continue
        jobs.append(
            PublishJob(
                post_id=post.id,
                platform=platform,
                request=PublishRequest(
                    connection=ConnectionInfo.from_model(connection),
                    content=group.content,
                    media=media,
                    settings=options,
                    idempotency_key=f"{group.id}:{post.platform_id}",
                ),
            )
        )
    return jobs


class SchedulerWorker:
    """Periodically publishes due post groups.

    Args:
        session_factory: Returns a context-managed session per unit of work.
        adapter_factory: Maps a platform to an adapter instance.
        sleep: Used for retry backoff; tests pass a no-op.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        *,
        adapter_factory: AdapterFactory | None = None,
        sleep: Sleeper | None = None,
        batch_size: int | None = None,
        max_concurrency: int | None = None,
        processing_timeout_seconds: int | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._adapter_factory = adapter_factory or get_adapter
        self._sleep = sleep
        self.batch_size = batch_size or settings.scheduler_batch_size
        self.max_concurrency = max(1, max_concurrency or settings.scheduler_max_concurrency)
        self.processing_timeout = timedelta(
            seconds=processing_timeout_seconds or settings.scheduler_processing_timeout_seconds
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background polling loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop and wait for the current pass to finish."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(settings.scheduler_poll_interval_seconds))
        logger.info("Scheduler started (interval %.1fs)", interval)

        while not self._stopping.is_set():
            try:
                await self.run_once()
            except SQLAlchemyError as e:
                logger.error("Scheduler pass failed with database error: %s", e, exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue
        logger.info("Scheduler stopped")

    async def run_once(self, now: datetime | None = None) -> list[str]:
        """Run the watchdog, then publish every due group.

        Returns:
            Ids of the groups this pass claimed.
        """
        now = now or utcnow()
        await asyncio.to_thread(self.expire_stuck, now)

        due = await asyncio.to_thread(self._list_due, now)
        if not due:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(group_id: str) -> bool:
            async with semaphore:
                return await self.process_group(group_id, now)

        results = await asyncio.gather(*(guarded(group_id) for group_id in due), return_exceptions=True)

        claimed = []
        for group_id, result in zip(due, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Processing post group %s failed: %s", group_id, result, exc_info=result)
            elif result:
                claimed.append(group_id)
        return claimed

    async def process_group(self, group_id: str, now: datetime | None = None) -> bool:
        """Claim and publish a single group. Returns False if someone else owns it."""
        now = now or utcnow()
        jobs = await asyncio.to_thread(self._claim, group_id, now)
        if jobs is None:
            return False

        logger.info("Publishing post group %s to %d platforms", group_id, len(jobs))
        await asyncio.gather(*(self._run_job(job) for job in jobs))
        status = await asyncio.to_thread(self._finalize, group_id)
        logger.info("Post group %s finished as %s", group_id, status)
        return True

    async def _run_job(self, job: PublishJob) -> PublishOutcome:
        if job.request is None:
            outcome = PublishOutcome(status=STATUS_FAILED, attempts=0, error=job.error)
        else:
            outcome = await publish_with_retry(
                self._adapter_factory(job.platform),
                job.request,
                sleep=self._sleep,
            )
        recorded = await asyncio.to_thread(self._record, job.post_id, outcome)
        if not recorded:
            logger.warning("Outcome for post %s arrived after it was resolved elsewhere", job.post_id)
        return outcome

    # Blocking steps: each runs in a worker thread with its own short session.

    def _list_due(self, now: datetime) -> list[str]:
        with self._session_factory() as db:
            return PostGroupRepository(db).list_due(now, self.batch_size)

    def _claim(self, group_id: str, now: datetime) -> list[PublishJob] | None:
        with self._session_factory() as db:
            repo = PostGroupRepository(db)
            if not repo.claim_for_processing(group_id, now):
                logger.debug("Post group %s was not claimable", group_id)
                return None
            group = repo.find(group_id)
            if group is None:
                return None
            jobs = build_jobs(db, group)
            # Close the read transaction before the network fan-out starts.
            db.commit()
            return jobs

    def _record(self, post_id: int, outcome: PublishOutcome) -> bool:
        with self._session_factory() as db:
            return PostGroupRepository(db).record_post_result(
                post_id,
                status=outcome.status,
                attempts=outcome.attempts,
                posted_id=outcome.posted_id,
                published_url=outcome.published_url,
                error=outcome.error,
            )

    def _finalize(self, group_id: str) -> str:
        with self._session_factory() as db:
            return PostGroupRepository(db).finalize(group_id)

    def expire_stuck(self, now: datetime | None = None) -> list[str]:
        """Fail groups stuck in processing longer than the timeout."""
        now = now or utcnow()
        expired = []
        with self._session_factory() as db:
            repo = PostGroupRepository(db)
            for group_id in repo.list_stuck(now - self.processing_timeout, self.batch_size):
                failed = repo.fail_unfinished_posts(
                    group_id,
                    f"{PROCESSING_TIMEOUT_ERROR}: no result within {int(self.processing_timeout.total_seconds())}s",
                )
                status = repo.finalize(group_id, now=now)
                logger.warning(
                    "Watchdog resolved stuck post group %s as %s (%d posts timed out)",
                    group_id,
                    status,
                    failed,
                )
                expired.append(group_id)
        return expired
