"""
Background task scheduler for the tennis league API.

Jobs:
- Auto-end seasons whose end date has passed (daily, just after midnight,
  and once at startup)
- Drop expired ranking cache entries (every few minutes)

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from tennis_league.core.config import settings
from tennis_league.core.database import SessionFactory, SessionLocal
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.warmup import CacheWarmer

logger = logging.getLogger(__name__)


class LeagueScheduler:
    """
    Scheduler for league housekeeping.

    Args:
        cache: Ranking cache to clean and invalidate
        warmer: Warm-up scheduler used after seasons are auto-ended
        session_factory: Creates a session per job run
    """

    def __init__(
        self,
        cache: RankingCache,
        warmer: Optional[CacheWarmer] = None,
        session_factory: SessionFactory = SessionLocal,
        timezone: Optional[str] = None,
    ):
        self.cache = cache
        self.warmer = warmer
        self.session_factory = session_factory
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting league scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': 300  # 5 minutes grace for misfires
            }
        )

        self._schedule_season_expiry()
        self._schedule_cache_cleanup()

        self.scheduler.start()
        self.running = True

        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Scheduler stopped")

    # ========================================================================
    # Jobs
    # ========================================================================

    def end_expired_seasons(self) -> int:
        """
        End auto-ending seasons past their end date.

        Clears the ranking cache and schedules a warm-up when anything ended.

        Returns:
            Number of seasons ended
        """
        from tennis_league.services.season_service import SeasonService

        db = self.session_factory()
        try:
            ended = SeasonService(db, default_loss_fee=settings.DEFAULT_LOSS_FEE).check_expired()
        finally:
            db.close()

        if ended:
            names = ", ".join(season["name"] for season in ended)
            logger.info(f"Auto-ended {len(ended)} expired season(s): {names}")
            if self.warmer is not None:
                self.warmer.invalidate(reason="seasons auto-ended")
            else:
                self.cache.clear()
        return len(ended)

    def cleanup_cache(self) -> int:
        return self.cache.cleanup_expired()

    def _schedule_season_expiry(self):
        """
        Schedule: Auto-end expired seasons.

        Frequency: Daily at 00:05 local time, plus one run at startup
        """
        if self.scheduler is None:
            return

        @self.scheduler.scheduled_job(
            trigger=CronTrigger(hour=0, minute=5, timezone=self.timezone),
            id='season_expiry',
            name='Auto-end Expired Seasons',
            next_run_time=datetime.now(self.scheduler.timezone),
            misfire_grace_time=3600
        )
        async def season_expiry_job():
            try:
                self.end_expired_seasons()
            except Exception as e:
                logger.error(f"Season expiry check failed: {e}")

        logger.info("Scheduled: Season expiry (daily at 00:05)")

    def _schedule_cache_cleanup(self):
        """
        Schedule: Remove expired ranking cache entries.

        Frequency: Every CACHE_CLEANUP_INTERVAL_MINUTES
        """
        if self.scheduler is None:
            return

        minutes = settings.CACHE_CLEANUP_INTERVAL_MINUTES

        @self.scheduler.scheduled_job(
            trigger=IntervalTrigger(minutes=minutes),
            id='cache_cleanup',
            name='Ranking Cache Cleanup'
        )
        async def cache_cleanup_job():
            removed = self.cleanup_cache()
            if removed:
                logger.debug(f"Cache cleanup removed {removed} entries")

        logger.info(f"Scheduled: Cache cleanup (every {minutes} minutes)")

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %H:%M %Z') if next_run else 'Pending'
            logger.info(f"Job {job.id} ({job.name}), next run: {next_run_str}")


# Global scheduler instance
_scheduler: Optional[LeagueScheduler] = None


async def start_scheduler(
    cache: RankingCache,
    warmer: Optional[CacheWarmer] = None,
    session_factory: SessionFactory = SessionLocal,
) -> LeagueScheduler:
    """Start the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = LeagueScheduler(cache, warmer, session_factory)
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler instance."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[LeagueScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
