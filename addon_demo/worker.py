"""Background worker process running periodic maintenance jobs.

Run with ``python -m addon_demo.worker``. Every ``worker_interval_seconds``
the worker expires old page views, refreshes the cached page view total and
writes the daily summary that the web process serves from the cache.
"""

import asyncio
import os
import signal
import sys
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from .config import Settings, settings
from .log import configure_logging
from .monitoring import background_task, init_apm, shutdown_apm
from .storage import (
    SUMMARY_KEY,
    TOTAL_VIEWS_KEY,
    Cache,
    Repository,
    create_cache,
    create_repository,
)
from .types import DailySummary

JOB_ID = "maintenance"


class Worker:
    """Periodic job processor sharing the web process's add-ons."""

    def __init__(
        self,
        repository: Repository,
        cache: Cache,
        config: Settings | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.config = config or settings
        self.scheduler = scheduler or AsyncIOScheduler()
        self.is_running = False
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Schedule the jobs and run them once immediately."""
        logger.info("Worker process starting...")
        self.is_running = True

        self.scheduler.add_job(
            background_task(self.process_jobs, name=JOB_ID),
            "interval",
            seconds=self.config.worker_interval_seconds,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()

        await self.process_jobs()
        logger.info("Worker process started successfully")

    async def process_jobs(self) -> None:
        """Run every maintenance job in sequence, never overlapping a previous run."""
        if not self.is_running:
            return
        if self._lock.locked():
            logger.warning("Previous job run still in progress, skipping")
            return

        async with self._lock:
            logger.info("Processing background jobs...")
            await self.clean_old_page_views()
            await self.update_cache_stats()
            await self.generate_daily_summary()
            logger.info("Background jobs completed successfully")

    async def clean_old_page_views(self) -> None:
        """Delete page views past the retention window."""
        if not self.repository.configured:
            logger.debug("PostgreSQL not configured, skipping page view cleanup")
            return

        try:
            deleted = await self.repository.delete_older_than(self.config.page_view_retention_days)
        except Exception as e:  # noqa: BLE001
            logger.error("Error cleaning old page views", error=str(e))
            return

        if deleted > 0:
            logger.info(f"Cleaned {deleted} old page views")

    async def update_cache_stats(self) -> None:
        """Store the total page view count in the cache."""
        if not self.cache.is_ready:
            logger.debug("Redis not configured, skipping cache stats update")
            return

        try:
            total = await self.repository.get_total_page_views()
            await self.cache.set(TOTAL_VIEWS_KEY, total, self.config.stats_cache_ttl)
        except Exception as e:  # noqa: BLE001
            logger.error("Error updating cache stats", error=str(e))
            return

        logger.info(f"Updated cache stats: {total} total views")

    async def generate_daily_summary(self) -> None:
        """Compute the summary served by ``/api/summary``."""
        try:
            stats = await self.repository.get_page_view_stats()
            total = await self.repository.get_total_page_views()

            summary: DailySummary = {
                "timestamp": datetime.now(UTC).isoformat(),
                "total_views": total,
                "top_pages": stats[: self.config.summary_top_pages] if stats else [],
                "generated_by": "worker-process",
            }
            await self.cache.set(SUMMARY_KEY, summary, self.config.summary_cache_ttl)
        except Exception as e:  # noqa: BLE001
            logger.error("Error generating daily summary", error=str(e))
            return

        logger.info("Generated daily summary", total_views=total)

    async def stop(self) -> None:
        """Stop scheduling and close add-on connections."""
        logger.info("Worker process stopping...")
        self.is_running = False

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        # Let a run already in progress finish before its add-ons go away
        async with self._lock:
            await self.repository.shutdown()
            await self.cache.shutdown()

        logger.info("Worker process stopped")


async def run_worker(config: Settings | None = None) -> None:
    """Run the worker until SIGTERM or SIGINT."""
    config = config or settings

    repository = create_repository(config)
    cache = create_cache(config)
    await repository.startup()
    await cache.startup()

    worker = Worker(repository, cache, config)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_stop(sig: signal.Signals) -> None:
        logger.info(f"{sig.name} received")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, request_stop, sig)

    try:
        await worker.start()
        await stop_event.wait()
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await worker.stop()


def main() -> None:
    """Entry point for the worker process type."""
    configure_logging()
    init_apm(background=True)
    logger.info("Worker process initialized", pid=os.getpid(), python=sys.version.split()[0])

    try:
        asyncio.run(run_worker())
    except Exception:
        logger.exception("Failed to start worker")
        sys.exit(1)
    finally:
        shutdown_apm()


if __name__ == "__main__":
    main()
