"""
Season routes: lifecycle and roster.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tennis_league.api.dependencies import after_write, get_cache_warmer, http_error
from tennis_league.core.auth import require_admin, require_api_key
from tennis_league.core.config import settings
from tennis_league.core.database import get_db
from tennis_league.core.errors import LeagueError
from tennis_league.services.ranking.warmup import CacheWarmer
from tennis_league.services.season_service import SeasonService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seasons", tags=["seasons"])


class SeasonRequest(BaseModel):
    """Create or update a season."""
    name: str = Field(..., min_length=1, max_length=100, description="Season name")
    start_date: date = Field(..., description="First play date (YYYY-MM-DD)")
    end_date: Optional[date] = Field(None, description="Last play date (YYYY-MM-DD)")
    auto_end: bool = Field(False, description="End automatically once end_date has passed")
    description: Optional[str] = Field("", description="Free text")
    loss_fee: Optional[int] = Field(None, ge=0, description="Per-loss fee override")


class EndSeasonRequest(BaseModel):
    end_date: Optional[date] = Field(None, description="Defaults to today, or the start date for a season not yet started")
    ended_by: Optional[str] = Field(None, max_length=100)


class RosterRequest(BaseModel):
    player_ids: List[int] = Field(default_factory=list, description="Empty list admits every player")
    added_by: Optional[str] = Field(None, max_length=100)


def _service(db: Session) -> SeasonService:
    return SeasonService(db, default_loss_fee=settings.DEFAULT_LOSS_FEE)


# ============================================================================
# Reads
# ============================================================================

@router.get("", response_model=List[dict])
async def list_seasons(db: Session = Depends(get_db)):
    """All seasons, active first."""
    return _service(db).list_seasons()


@router.get("/active")
async def get_active_season(db: Session = Depends(get_db)):
    """The active season, or null when none is active."""
    return _service(db).get_active_season()


@router.get("/{season_id}")
async def get_season(season_id: int, db: Session = Depends(get_db)):
    try:
        return _service(db).get_season(season_id)
    except LeagueError as e:
        raise http_error(e)


# ============================================================================
# Lifecycle
# ============================================================================

@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
async def create_season(
    request: SeasonRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """
    Create a season.

    The new season becomes the active one unless its end date is already in
    the past. Expired auto-ending seasons are closed first.
    """
    try:
        season = _service(db).create_season(
            name=request.name,
            start_date=request.start_date,
            end_date=request.end_date,
            auto_end=request.auto_end,
            description=request.description or "",
            loss_fee=request.loss_fee,
        )
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "season", "create")
    return season


@router.post("/check-expired", dependencies=[Depends(require_api_key)])
async def check_expired_seasons(
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """End every auto-ending season whose end date has passed."""
    ended = _service(db).check_expired()
    if ended:
        after_write(warmer, "season", "auto_end")
    return {"ended": len(ended), "seasons": ended}


@router.put("/{season_id}", dependencies=[Depends(require_api_key)])
async def update_season(
    season_id: int,
    request: SeasonRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    try:
        season = _service(db).update_season(
            season_id,
            name=request.name,
            start_date=request.start_date,
            end_date=request.end_date,
            auto_end=request.auto_end,
            description=request.description or "",
            loss_fee=request.loss_fee,
        )
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "season", "update")
    return season


@router.post("/{season_id}/end", dependencies=[Depends(require_api_key)])
async def end_season(
    season_id: int,
    request: Optional[EndSeasonRequest] = None,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """End a season (end date defaults to today, never before its start)."""
    request = request or EndSeasonRequest()
    try:
        season = _service(db).end_season(season_id, end_date=request.end_date, ended_by=request.ended_by)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "season", "end")
    return season


@router.post("/{season_id}/reactivate", dependencies=[Depends(require_api_key)])
async def reactivate_season(
    season_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """Make an ended season active again; any other active season is deactivated."""
    try:
        season = _service(db).reactivate_season(season_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "season", "reactivate")
    return season


@router.delete("/{season_id}", dependencies=[Depends(require_admin)])
async def delete_season(
    season_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """Delete an ended season together with its matches and roster."""
    try:
        result = _service(db).delete_season(season_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "season", "delete")
    return {"message": "Season deleted successfully", **result}


# ============================================================================
# Roster
# ============================================================================

@router.get("/{season_id}/players")
async def get_season_roster(season_id: int, db: Session = Depends(get_db)):
    try:
        return _service(db).get_roster(season_id)
    except LeagueError as e:
        raise http_error(e)


@router.put("/{season_id}/players", dependencies=[Depends(require_api_key)])
async def set_season_roster(
    season_id: int,
    request: RosterRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """Replace the roster of a season."""
    try:
        roster = _service(db).set_roster(season_id, request.player_ids, added_by=request.added_by)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "roster", "replace")
    return roster


@router.post("/{season_id}/players/{player_id}", status_code=201, dependencies=[Depends(require_api_key)])
async def add_roster_player(
    season_id: int,
    player_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    try:
        entry = _service(db).add_roster_player(season_id, player_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "roster", "add")
    return entry


@router.delete("/{season_id}/players/{player_id}", dependencies=[Depends(require_api_key)])
async def remove_roster_player(
    season_id: int,
    player_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    try:
        entry = _service(db).remove_roster_player(season_id, player_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "roster", "remove")
    return entry
