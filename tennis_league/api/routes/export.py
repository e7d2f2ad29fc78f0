"""
Excel export routes.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tennis_league.api.dependencies import get_ranking_cache, http_error
from tennis_league.core.config import settings
from tennis_league.core.database import get_db
from tennis_league.core.errors import LeagueError
from tennis_league.services.export_service import XLSX_MEDIA_TYPE, ExportService
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.scope import parse_play_date, parse_season_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])


def _attachment(filename: str, content: bytes) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("")
async def export_all(
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Full backup: players, seasons, matches and lifetime rankings."""
    filename, content = ExportService(db, cache, settings).export_all()
    return _attachment(filename, content)


@router.get("/lifetime")
async def export_lifetime(
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    filename, content = ExportService(db, cache, settings).export_lifetime()
    return _attachment(filename, content)


@router.get("/season/{season_id}")
async def export_season(
    season_id: str,
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    try:
        filename, content = ExportService(db, cache, settings).export_season(parse_season_id(season_id))
    except LeagueError as e:
        raise http_error(e)
    return _attachment(filename, content)


@router.get("/date/{play_date}")
async def export_date(
    play_date: str,
    db: Session = Depends(get_db),
    cache: RankingCache = Depends(get_ranking_cache),
):
    try:
        filename, content = ExportService(db, cache, settings).export_date(parse_play_date(play_date))
    except LeagueError as e:
        raise http_error(e)
    return _attachment(filename, content)
