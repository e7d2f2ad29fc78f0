"""
Repository layer for data access.

Usage:
    from tennis_league.repositories import PlayerRepository, MatchRepository
    from tennis_league.core.database import SessionLocal

    db = SessionLocal()
    players = PlayerRepository(db).list_all()
    db.close()
"""

from tennis_league.repositories.base import BaseRepository
from tennis_league.repositories.player_repository import PlayerRepository
from tennis_league.repositories.season_repository import SeasonRepository
from tennis_league.repositories.match_repository import MatchRepository

__all__ = [
    "BaseRepository",
    "PlayerRepository",
    "SeasonRepository",
    "MatchRepository",
]
