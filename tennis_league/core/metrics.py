"""
Prometheus metrics for the tennis league API.

Metrics exposed:
- Ranking cache hit/miss/invalidation/preload counters and entry gauge
- Ranking computation latency per scope kind
- Store mutations per entity
- Scheduler status gauges
"""
from prometheus_client import Counter, Gauge, Histogram

# Ranking cache
ranking_cache_hits_total = Counter(
    "ranking_cache_hits_total",
    "Ranking cache lookups served from memory",
    ["scope"]
)

ranking_cache_misses_total = Counter(
    "ranking_cache_misses_total",
    "Ranking cache lookups that required recomputation",
    ["scope"]
)

ranking_cache_invalidations_total = Counter(
    "ranking_cache_invalidations_total",
    "Ranking cache entries removed by clear/invalidate"
)

ranking_cache_preloads_total = Counter(
    "ranking_cache_preloads_total",
    "Ranking scopes recomputed by the background warm-up"
)

ranking_cache_entries = Gauge(
    "ranking_cache_entries",
    "Entries currently held by the ranking cache"
)

# Ranking computation
ranking_computation_seconds = Histogram(
    "ranking_computation_seconds",
    "Time spent recomputing a ranking table from the store",
    ["scope"]
)

# Store writes
league_mutations_total = Counter(
    "league_mutations_total",
    "Successful writes to league data",
    ["entity", "action"]
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the league scheduler is running (1=running, 0=stopped)"
)

scheduler_jobs_total = Gauge(
    "scheduler_jobs_total",
    "Total number of scheduled jobs"
)


def scope_label(cache_key: str) -> str:
    """Reduce a cache key like 'rankings:season:3' to its kind ('season')."""
    parts = cache_key.split(":")
    return parts[1] if len(parts) > 1 else cache_key


def record_cache_lookup(cache_key: str, hit: bool) -> None:
    """Count a cache hit or miss for the scope behind `cache_key`."""
    label = scope_label(cache_key)
    if hit:
        ranking_cache_hits_total.labels(scope=label).inc()
    else:
        ranking_cache_misses_total.labels(scope=label).inc()


def record_mutation(entity: str, action: str) -> None:
    """Count a committed write to players, matches or seasons."""
    league_mutations_total.labels(entity=entity, action=action).inc()


def update_scheduler_metrics():
    """Refresh scheduler gauges from the running scheduler."""
    from tennis_league.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        scheduler_running.set(1)
        if scheduler.scheduler:
            scheduler_jobs_total.set(len(scheduler.scheduler.get_jobs()))
    else:
        scheduler_running.set(0)
        scheduler_jobs_total.set(0)
