"""
Shared FastAPI dependencies and helpers for the league routes.
"""
from fastapi import HTTPException, Request

from tennis_league.core import metrics
from tennis_league.core.errors import LeagueError
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.warmup import CacheWarmer


def get_ranking_cache(request: Request) -> RankingCache:
    """The process-wide ranking cache created in the app lifespan."""
    return request.app.state.ranking_cache


def get_cache_warmer(request: Request) -> CacheWarmer:
    return request.app.state.cache_warmer


def http_error(error: LeagueError) -> HTTPException:
    """Translate a domain error into the HTTP error the routes raise."""
    detail = error.message if error.details is None else error.to_dict()
    return HTTPException(status_code=error.status_code, detail=detail)


def after_write(warmer: CacheWarmer, entity: str, action: str) -> None:
    """
    Run after a committed write: clear rankings, start the background
    warm-up and count the mutation. Must be called before responding.
    """
    warmer.invalidate(reason=f"{entity} {action}")
    metrics.record_mutation(entity, action)
