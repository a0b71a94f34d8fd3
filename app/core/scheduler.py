import logging
import os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.config import settings
from app.services.leaderboard import leaderboard_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def refresh_stale_leaderboard_caches():
    results = await leaderboard_service.refresh_stale_caches()
    failed = [r.department_id for r in results if not r.success]
    if failed:
        logger.warning(f"Stale cache refresh failed for departments: {failed}")
    logger.info(f"Stale leaderboard caches processed: {len(results)}")


def start_scheduler():
    if os.getenv("TESTING") == "true":
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.add_job(
            refresh_stale_leaderboard_caches,
            'interval',
            minutes=settings.CACHE_SWEEP_INTERVAL_MINUTES,
            id='refresh_stale_leaderboard_caches',
            name='Refresh Stale Leaderboard Caches',
            replace_existing=True
        )
        scheduler.start()
        logger.info("Scheduler started with stale leaderboard cache refresh job")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
