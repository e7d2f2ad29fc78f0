"""
Ranking service: cache in front of the aggregator.

    request -> cache.get(scope.cache_key)
            -> miss: read matches/players/fees, aggregate, cache.set(ttl by kind)
            -> rows (list of dicts ready for JSON)
"""
import time
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from tennis_league.core import metrics
from tennis_league.core.logging import get_logger
from tennis_league.repositories import MatchRepository, PlayerRepository, SeasonRepository
from tennis_league.services.ranking.aggregator import aggregate_rankings
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.scope import RankingScope, ScopeKind, ttl_for

logger = get_logger(__name__)


@dataclass
class RankingResult:
    scope: RankingScope
    rows: List[dict]
    cache_hit: bool

    @property
    def cache_key(self) -> str:
        return self.scope.cache_key


class RankingService:
    """
    Computes ranking tables for a scope, through the cache when one is given.

    Args:
        db: SQLAlchemy session
        cache: Shared RankingCache, or None to always recompute
        app_settings: Settings providing fees, form length and TTLs
    """

    def __init__(self, db: Session, cache: Optional[RankingCache], app_settings):
        self.db = db
        self.cache = cache
        self.settings = app_settings
        self.matches = MatchRepository(db)
        self.players = PlayerRepository(db)
        self.seasons = SeasonRepository(db)

    def compute(self, scope: RankingScope) -> List[dict]:
        """Recompute a scope from the store, bypassing the cache."""
        started = time.perf_counter()

        matches = self.matches.list_for_scope(scope)
        players = self.players.list_all()

        rows = aggregate_rankings(
            matches,
            players,
            fee_for_season=self._fee_lookup(scope),
            form_length=self.settings.FORM_LENGTH,
        )

        elapsed = time.perf_counter() - started
        metrics.ranking_computation_seconds.labels(scope=scope.kind.value).observe(elapsed)
        logger.debug(
            f"Computed rankings for {scope}: {len(rows)} players from {len(matches)} matches",
            extra={"scope": scope.scope_key, "duration_ms": round(elapsed * 1000, 2)},
        )
        return [row.to_dict() for row in rows]

    def _fee_lookup(self, scope: RankingScope):
        """Season scopes read one fee; wider scopes map every season to its fee."""
        default = self.settings.DEFAULT_LOSS_FEE
        if scope.kind is ScopeKind.SEASON:
            fee = self.seasons.get_loss_fee(scope.season_id, default=default)
            return lambda season_id: fee
        fees = self.seasons.loss_fees(default=default)
        return lambda season_id: fees.get(season_id, default)

    def get_rankings(self, scope: RankingScope) -> RankingResult:
        """Cached table for `scope`, recomputing and caching on a miss."""
        if self.cache is not None:
            cached = self.cache.get(scope.cache_key)
            if isinstance(cached, list):
                metrics.record_cache_lookup(scope.cache_key, hit=True)
                return RankingResult(scope=scope, rows=cached, cache_hit=True)
            if cached is not None:
                logger.warning(f"Discarding unexpected cached value for {scope.cache_key}")

        metrics.record_cache_lookup(scope.cache_key, hit=False)
        rows = self.compute(scope)

        if self.cache is not None:
            self.cache.set(scope.cache_key, rows, ttl_for(scope, self.settings))

        return RankingResult(scope=scope, rows=rows, cache_hit=False)
