"""
Cache invalidation and background warm-up after writes.

The write path is:

    commit store write -> cache.clear() -> schedule warm-up -> respond

The warm-up is a fire-and-forget asyncio task: it sleeps a short delay, then
runs `RankingCache.preload_common_data` in a worker thread with its own
session. Nothing waits for it and it may not finish before shutdown.
"""
import asyncio
from typing import Optional, Set

from tennis_league.core.database import SessionFactory
from tennis_league.core.logging import get_logger
from tennis_league.services.ranking.cache import RankingCache

logger = get_logger(__name__)


class CacheWarmer:
    """
    Schedules best-effort cache warm-ups.

    Args:
        cache: The shared ranking cache
        session_factory: Creates the session the warm-up reads through
        delay_seconds: Pause before recomputing, so bursts of writes settle
        enabled: When False, `schedule` is a no-op
    """

    def __init__(
        self,
        cache: RankingCache,
        session_factory: SessionFactory,
        delay_seconds: float = 0.1,
        enabled: bool = True,
    ):
        self.cache = cache
        self.session_factory = session_factory
        self.delay_seconds = delay_seconds
        self.enabled = enabled
        self._tasks: Set[asyncio.Task] = set()

    def invalidate(self, reason: str = "") -> int:
        """Clear the cache and schedule a warm-up. Returns entries cleared."""
        cleared = self.cache.clear()
        if reason:
            logger.info(f"Rankings invalidated: {reason}")
        self.schedule()
        return cleared

    def schedule(self) -> Optional[asyncio.Task]:
        """Start a warm-up task on the running loop, if any."""
        if not self.enabled:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping cache warm-up")
            return None

        task = loop.create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self) -> int:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        return await asyncio.to_thread(self.cache.preload_common_data, self.session_factory)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel outstanding warm-ups."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
