"""
Ranking computation and caching.

- scope: which matches a table covers and its cache key
- aggregator: pure leaderboard computation
- cache: in-memory TTL cache shared by request handlers
- service: cache-through lookups (import directly to avoid cycles)
- warmup: clear + background warm-up after writes
"""
from tennis_league.services.ranking.scope import (
    RankingScope,
    ScopeKind,
    resolve_scope,
    parse_scope_key,
    ttl_for,
)
from tennis_league.services.ranking.aggregator import (
    RankingRow,
    FormEntry,
    aggregate_rankings,
    win_percentage,
)
from tennis_league.services.ranking.cache import RankingCache

__all__ = [
    "RankingScope",
    "ScopeKind",
    "resolve_scope",
    "parse_scope_key",
    "ttl_for",
    "RankingRow",
    "FormEntry",
    "aggregate_rankings",
    "win_percentage",
    "RankingCache",
]
