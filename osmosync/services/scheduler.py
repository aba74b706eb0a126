"""Background timer that runs a bookmarks sync periodically."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from datetime import datetime

    from osmosync.config import BookmarksSyncConfig
    from osmosync.sync.session import SyncSessionController

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "bookmarks_sync"


class SyncScheduler:
    """Owns the periodic sync job and re-derives it when settings change."""

    def __init__(self, controller: SyncSessionController) -> None:
        """Initialize scheduler.

        Args:
            controller: Session controller the timer job calls into
        """
        self.controller = controller
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False
        self._settings: BookmarksSyncConfig | None = None

    async def start(self, settings: BookmarksSyncConfig | None = None) -> None:
        """Start the scheduler, adding the sync job if ``settings`` enable it."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

        if settings is not None:
            self._settings = settings
        if self._settings is not None:
            self.apply_settings(self._settings)

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self.is_running:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    def apply_settings(self, settings: BookmarksSyncConfig) -> None:
        """Create, reschedule or clear the sync job to match ``settings``.

        Before ``start`` the settings are only remembered.
        """
        self._settings = settings
        if self._scheduler is None:
            return

        if settings.timer_enabled:
            self._scheduler.add_job(
                self._run_timer_sync,
                trigger=IntervalTrigger(minutes=settings.sync_interval_minutes),
                id=SYNC_JOB_ID,
                name="Bookmarks Sync",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info(
                "scheduler_sync_job_set",
                extra={
                    "job_id": SYNC_JOB_ID,
                    "interval_minutes": settings.sync_interval_minutes,
                    "next_run_time": str(self.get_next_run_time()),
                },
            )
        else:
            if self.has_sync_job:
                self._scheduler.remove_job(SYNC_JOB_ID)
            logger.info(
                "scheduler_sync_job_cleared",
                extra={
                    "enabled": settings.sync_to_bookmarks_bar,
                    "interval_minutes": settings.sync_interval_minutes,
                },
            )

    async def _run_timer_sync(self) -> None:
        """Execute one scheduled sync. The result is only logged."""
        if self.controller.is_syncing:
            logger.info("scheduled_bookmarks_sync_skipped", extra={"job_id": SYNC_JOB_ID})
            return
        try:
            result = await self.controller.sync(trigger="timer")
        except Exception as e:
            logger.exception("scheduled_bookmarks_sync_failed", extra={"error": str(e)})
            return
        logger.info(
            "scheduled_bookmarks_sync_complete",
            extra={
                "correlation_id": result.correlation_id,
                "status": result.status.value,
                "sync_message": result.message,
            },
        )

    def get_next_run_time(self) -> datetime | None:
        """Next scheduled sync, or None when the timer is off or not started."""
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None

    @property
    def has_sync_job(self) -> bool:
        return self._scheduler is not None and self._scheduler.get_job(SYNC_JOB_ID) is not None
