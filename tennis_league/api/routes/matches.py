"""
Match routes.

Every write clears the ranking cache before responding, so the next ranking
read reflects it.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tennis_league.api.dependencies import after_write, get_cache_warmer, http_error
from tennis_league.core.auth import require_api_key
from tennis_league.core.database import get_db
from tennis_league.core.errors import LeagueError
from tennis_league.models import MATCH_TYPE_DUO
from tennis_league.services.match_service import MatchService
from tennis_league.services.ranking.scope import parse_play_date
from tennis_league.services.ranking.warmup import CacheWarmer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


class MatchRequest(BaseModel):
    """
    A match result. Team 1 is players 1-2, team 2 is players 3-4.

    Solo matches leave player2_id and player4_id empty.
    """
    season_id: int = Field(..., gt=0)
    play_date: date = Field(..., description="YYYY-MM-DD")
    player1_id: int = Field(..., gt=0)
    player2_id: Optional[int] = Field(None, gt=0)
    player3_id: int = Field(..., gt=0)
    player4_id: Optional[int] = Field(None, gt=0)
    team1_score: int = Field(..., ge=0)
    team2_score: int = Field(..., ge=0)
    winning_team: Optional[int] = Field(
        None, ge=1, le=2,
        description="Derived from the score when omitted; must agree with a non-level score, required for a level one",
    )
    match_type: str = Field(MATCH_TYPE_DUO, description="duo or solo")


# ============================================================================
# Reads
# ============================================================================

@router.get("", response_model=List[dict])
async def list_matches(
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Newest N matches"),
    db: Session = Depends(get_db),
):
    """Matches, newest first."""
    return MatchService(db).list_matches(limit)


@router.get("/play-dates")
async def list_play_dates(db: Session = Depends(get_db)):
    """Distinct play dates, newest first."""
    return MatchService(db).play_dates()


@router.get("/play-dates/latest")
async def latest_play_date(db: Session = Depends(get_db)):
    return {"play_date": MatchService(db).latest_play_date()}


@router.get("/by-date/{play_date}", response_model=List[dict])
async def matches_by_date(play_date: str, db: Session = Depends(get_db)):
    try:
        return MatchService(db).matches_by_date(parse_play_date(play_date))
    except LeagueError as e:
        raise http_error(e)


@router.get("/by-season/{season_id}", response_model=List[dict])
async def matches_by_season(season_id: int, db: Session = Depends(get_db)):
    try:
        return MatchService(db).matches_by_season(season_id)
    except LeagueError as e:
        raise http_error(e)


@router.get("/{match_id}")
async def get_match(match_id: int, db: Session = Depends(get_db)):
    try:
        return MatchService(db).get_match(match_id)
    except LeagueError as e:
        raise http_error(e)


# ============================================================================
# Writes
# ============================================================================

@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
async def create_match(
    request: MatchRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """Record a match result."""
    try:
        match = MatchService(db).create_match(**request.model_dump())
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "match", "create")
    return match


@router.put("/{match_id}", dependencies=[Depends(require_api_key)])
async def update_match(
    match_id: int,
    request: MatchRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    try:
        match = MatchService(db).update_match(match_id, **request.model_dump())
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "match", "update")
    return match


@router.delete("/{match_id}", dependencies=[Depends(require_api_key)])
async def delete_match(
    match_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    try:
        result = MatchService(db).delete_match(match_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "match", "delete")
    return {"message": "Match deleted successfully", **result}
