"""
In-memory TTL cache for ranking tables.

One instance lives on `app.state` for the life of the process. Every write to
players, matches or seasons calls `clear()` before the response goes out, and
then schedules `preload_common_data()` in the background (see warmup.py).

Operations are atomic per key under a lock. A clear racing a background
preload resolves last-write-wins: the preload may put a freshly computed
table back right after the clear.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from tennis_league.core import metrics
from tennis_league.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float
    access_count: int = 0
    last_accessed: float = 0.0


def _empty_stats() -> Dict[str, int]:
    return {
        "hits": 0,
        "misses": 0,
        "sets": 0,
        "invalidations": 0,
        "preloads": 0,
        "expired": 0,
    }


class RankingCache:
    """
    Keyed TTL cache.

    Args:
        default_ttl: TTL in seconds used when `set` gets none
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self.stats = _empty_stats()

    # ========================================================================
    # Core operations
    # ========================================================================

    def get(self, key: str) -> Optional[Any]:
        """Cached value for `key`, or None on a miss or an expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()

            if entry is None:
                self.stats["misses"] += 1
                logger.debug(f"Cache MISS: {key}")
                return None

            if not isinstance(entry, CacheEntry):
                # Unknown object in the slot: drop it and recompute
                del self._entries[key]
                self.stats["misses"] += 1
                logger.warning(f"Cache slot {key} held {type(entry).__name__}; treating as miss")
                return None

            if now >= entry.expires_at:
                del self._entries[key]
                self.stats["expired"] += 1
                self.stats["misses"] += 1
                logger.debug(f"Cache EXPIRED: {key}")
                return None

            entry.access_count += 1
            entry.last_accessed = now
            self.stats["hits"] += 1
            logger.debug(
                f"Cache HIT: {key} (accessed {entry.access_count} times, "
                f"expires in {round(entry.expires_at - now)}s)"
            )
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store `value` until now + ttl seconds, replacing any existing entry."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + ttl,
                last_accessed=now,
            )
            self.stats["sets"] += 1
            metrics.ranking_cache_entries.set(len(self._entries))
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
            self.stats["invalidations"] += size
            metrics.ranking_cache_entries.set(0)
        metrics.ranking_cache_invalidations_total.inc(size)
        logger.info(f"Cache CLEAR: {size} entries removed")
        return size

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Drop keys containing `pattern`, or everything when no pattern is given."""
        if not pattern:
            return self.clear()

        with self._lock:
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]
            self.stats["invalidations"] += len(doomed)
            metrics.ranking_cache_entries.set(len(self._entries))
        metrics.ranking_cache_invalidations_total.inc(len(doomed))
        logger.info(f"Cache INVALIDATE: {len(doomed)} entries (pattern: {pattern})")
        return len(doomed)

    # ========================================================================
    # Expiry
    # ========================================================================

    def is_expired(self, key: str) -> bool:
        """True when the key is absent, unusable or past its expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if not isinstance(entry, CacheEntry):
                return True
            return self._clock() >= entry.expires_at

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            doomed = [
                key for key, entry in self._entries.items()
                if not isinstance(entry, CacheEntry) or now >= entry.expires_at
            ]
            for key in doomed:
                del self._entries[key]
            self.stats["expired"] += len(doomed)
            metrics.ranking_cache_entries.set(len(self._entries))

        if doomed:
            logger.info(f"Cache CLEANUP: {len(doomed)} expired entries removed")
        return len(doomed)

    # ========================================================================
    # Warm-up
    # ========================================================================

    def preload_common_data(self, session_factory) -> int:
        """
        Recompute the most requested tables if they are missing or stale.

        Warms lifetime, the active season and the latest play date. Failures
        are logged and swallowed; warm-up is advisory.

        Args:
            session_factory: Callable returning a new SQLAlchemy session

        Returns:
            Number of scopes recomputed
        """
        from tennis_league.core.config import settings
        from tennis_league.repositories import MatchRepository, SeasonRepository
        from tennis_league.services.ranking.scope import RankingScope, ttl_for
        from tennis_league.services.ranking.service import RankingService

        preloaded = 0
        db = None
        try:
            db = session_factory()
            scopes = [RankingScope.lifetime()]

            active_season = SeasonRepository(db).find_active()
            if active_season is not None:
                scopes.append(RankingScope.for_season(active_season.id))

            latest = MatchRepository(db).latest_play_date()
            if latest is not None:
                scopes.append(RankingScope.for_date(latest))

            service = RankingService(db, cache=None, app_settings=settings)
            for scope in scopes:
                if not self.is_expired(scope.cache_key):
                    continue
                rows = service.compute(scope)
                self.set(scope.cache_key, rows, ttl_for(scope, settings))
                with self._lock:
                    self.stats["preloads"] += 1
                metrics.ranking_cache_preloads_total.inc()
                preloaded += 1
                logger.info(f"Cache PRELOAD: {scope.cache_key}")
        except Exception as e:
            logger.warning(f"Cache preload error (non-critical): {e}")
        finally:
            if db is not None:
                db.close()

        return preloaded

    # ========================================================================
    # Introspection
    # ========================================================================

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return not self.is_expired(key)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            now = self._clock()
            lookups = self.stats["hits"] + self.stats["misses"]
            hit_rate = round(self.stats["hits"] / lookups * 100, 2) if lookups else 0.0
            expired_entries = sum(
                1 for entry in self._entries.values()
                if not isinstance(entry, CacheEntry) or now >= entry.expires_at
            )
            return {
                **self.stats,
                "hit_rate": hit_rate,
                "current_entries": len(self._entries),
                "expired_entries": expired_entries,
                "keys": sorted(self._entries),
            }

    def reset_stats(self) -> None:
        with self._lock:
            self.stats = _empty_stats()
