"""
Ranking routes.

Each ranking response is a JSON list of rows, best first, with:
- X-Cache: HIT or MISS
- X-Cache-Key: the cache slot that served or stored the table
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from tennis_league.api.dependencies import get_ranking_cache, http_error
from tennis_league.core.config import settings
from tennis_league.core.database import get_db
from tennis_league.core.errors import LeagueError, NotFoundError
from tennis_league.repositories import SeasonRepository
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.scope import (
    RankingScope,
    ScopeKind,
    parse_play_date,
    parse_scope_key,
    parse_season_id,
    resolve_scope,
)
from tennis_league.services.ranking.service import RankingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rankings", tags=["rankings"])


def _serve(scope: RankingScope, db: Session, cache: RankingCache, response: Response):
    if scope.kind is ScopeKind.SEASON and not SeasonRepository(db).exists(scope.season_id):
        raise NotFoundError(f"Season {scope.season_id} not found")

    result = RankingService(db, cache, settings).get_rankings(scope)
    response.headers["X-Cache"] = "HIT" if result.cache_hit else "MISS"
    response.headers["X-Cache-Key"] = result.cache_key
    return result.rows


@router.get("")
async def get_rankings(
    response: Response,
    view: str = Query("lifetime", description="lifetime, season or daily"),
    selector: Optional[str] = Query(None, description="Season id for season, YYYY-MM-DD for daily"),
    scope: Optional[str] = Query(
        None, description="Scope key (lifetime, season/<id>, date/<YYYY-MM-DD>); overrides view"
    ),
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Rankings for a scope key, or for a client view mode plus selector."""
    try:
        resolved = parse_scope_key(scope) if scope is not None else resolve_scope(view, selector)
        return _serve(resolved, db, cache, response)
    except LeagueError as e:
        raise http_error(e)


@router.get("/lifetime")
async def lifetime_rankings(
    response: Response,
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Rankings over every match ever played."""
    return _serve(RankingScope.lifetime(), db, cache, response)


@router.get("/season/{season_id}")
async def season_rankings(
    season_id: str,
    response: Response,
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Rankings for one season; 404 when the season does not exist."""
    try:
        scope = RankingScope.for_season(parse_season_id(season_id))
        return _serve(scope, db, cache, response)
    except LeagueError as e:
        raise http_error(e)


@router.get("/date/{play_date}")
async def date_rankings(
    play_date: str,
    response: Response,
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Rankings for one play date (YYYY-MM-DD)."""
    try:
        scope = RankingScope.for_date(parse_play_date(play_date))
        return _serve(scope, db, cache, response)
    except LeagueError as e:
        raise http_error(e)


@router.get("/cache/stats")
async def ranking_cache_stats(cache: RankingCache = Depends(get_ranking_cache)):
    """Hit/miss counters and current keys of the ranking cache."""
    return cache.get_stats()
