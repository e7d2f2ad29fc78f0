"""
Player routes.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tennis_league.api.dependencies import after_write, get_cache_warmer, http_error
from tennis_league.core.auth import require_admin, require_api_key
from tennis_league.core.database import get_db
from tennis_league.core.errors import LeagueError
from tennis_league.services.player_service import PlayerService
from tennis_league.services.ranking.warmup import CacheWarmer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/players", tags=["players"])


class CreatePlayerRequest(BaseModel):
    """Request to add a player."""
    name: str = Field(..., min_length=1, max_length=100, description="Unique player name")


@router.get("", response_model=List[dict])
async def list_players(db: Session = Depends(get_db)):
    """All players ordered by name."""
    return PlayerService(db).list_players()


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
async def create_player(
    request: CreatePlayerRequest,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """Add a player. Names must be unique (409 otherwise)."""
    try:
        player = PlayerService(db).add_player(request.name)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "player", "create")
    return player


@router.delete("/{player_id}", dependencies=[Depends(require_admin)])
async def delete_player(
    player_id: int,
    db: Session = Depends(get_db),
    warmer: CacheWarmer = Depends(get_cache_warmer),
):
    """
    Delete a player.

    Every match the player took part in is deleted too, which changes the
    rankings of their partners and opponents.
    """
    try:
        result = PlayerService(db).remove_player(player_id)
    except LeagueError as e:
        raise http_error(e)

    after_write(warmer, "player", "delete")
    return {"message": "Player deleted successfully", **result}
