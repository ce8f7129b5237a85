"""Periodic drivers that keep the dashboard snapshot and quality feed fresh.

Two independent loops run on the application's event loop: the snapshot loop
re-pulls records and recomputes the full snapshot, the quality loop re-pulls
the external feed.  Both run an iteration immediately on start and then sleep
for their interval.  ``stop()`` cancels both and waits for them to exit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from opsdash.config import settings
from opsdash.db import open_session
from opsdash.services.metrics.dashboard import MetricsDashboardService, metrics_dashboard
from opsdash.services.metrics.observability import REFRESH_FAILURES
from opsdash.services.metrics.quality_feed import QualityFeedClient
from opsdash.services.metrics.snapshot import MetricsSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_DRIVER = "snapshot"
QUALITY_FEED_DRIVER = "quality_feed"


class SnapshotRefresher:
    def __init__(
        self,
        service: MetricsDashboardService,
        *,
        snapshot_interval: float,
        quality_interval: float,
        quality_client: QualityFeedClient | None = None,
        session_factory: Callable[[], Session] = open_session,
        selector: str | None = None,
    ) -> None:
        self.service = service
        self.snapshot_interval = snapshot_interval
        self.quality_interval = quality_interval
        self.quality_client = quality_client
        self.session_factory = session_factory
        self.selector = selector
        self.latest: MetricsSnapshot | None = None
        self.quality_scores: dict[str, Any] | None = None
        self.quality_fetched_at: datetime | None = None
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = {
            SNAPSHOT_DRIVER: asyncio.create_task(
                self._loop(SNAPSHOT_DRIVER, self.refresh_snapshot, self.snapshot_interval)
            )
        }
        if self.quality_client is not None:
            self._tasks[QUALITY_FEED_DRIVER] = asyncio.create_task(
                self._loop(QUALITY_FEED_DRIVER, self.refresh_quality_feed, self.quality_interval)
            )
        logger.info("metrics_refresher_started drivers=%s", ",".join(self._tasks))

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = {}
        logger.info("metrics_refresher_stopped")

    def _build_snapshot(self) -> MetricsSnapshot:
        db = self.session_factory()
        try:
            return self.service.build_snapshot(db, self.selector)
        finally:
            db.close()

    async def refresh_snapshot(self) -> MetricsSnapshot:
        # the engine and the database driver are synchronous
        snapshot = await asyncio.to_thread(self._build_snapshot)
        self.latest = snapshot
        return snapshot

    async def refresh_quality_feed(self) -> dict[str, Any] | None:
        if self.quality_client is None:
            return None
        scores = await self.quality_client.fetch_scores()
        self.quality_scores = scores
        self.quality_fetched_at = datetime.now(UTC)
        return scores

    async def _loop(self, driver: str, refresh: Callable[[], Awaitable[Any]], interval: float) -> None:
        while True:
            try:
                await refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                REFRESH_FAILURES.labels(driver=driver).inc()
                logger.exception("metrics_refresh_failed driver=%s", driver)
            await asyncio.sleep(interval)


_refresher: SnapshotRefresher | None = None


def get_snapshot_refresher() -> SnapshotRefresher:
    """Application-wide refresher built from settings on first use."""
    global _refresher
    if _refresher is None:
        quality_client = None
        if settings.quality_feed_url:
            quality_client = QualityFeedClient(
                settings.quality_feed_url,
                token=settings.quality_feed_token,
                timeout=settings.quality_feed_timeout_seconds,
            )
        _refresher = SnapshotRefresher(
            metrics_dashboard,
            snapshot_interval=settings.snapshot_refresh_seconds,
            quality_interval=settings.quality_feed_refresh_seconds,
            quality_client=quality_client,
            selector=settings.default_period,
        )
    return _refresher
