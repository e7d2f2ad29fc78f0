"""
Player Repository.

Usage:
    repo = PlayerRepository(db)
    players = repo.list_all()
    repo.delete_with_matches(player)
"""
from typing import Optional, List
from sqlalchemy import or_

from tennis_league.models import Player, Match
from tennis_league.repositories.base import BaseRepository


class PlayerRepository(BaseRepository[Player]):
    """Repository for league players."""

    def __init__(self, db):
        super().__init__(Player, db)

    def list_all(self) -> List[Player]:
        """All players ordered by name."""
        return self.query().order_by(Player.name, Player.id).all()

    def find_by_name(self, name: str) -> Optional[Player]:
        """Find a player by exact name match."""
        return self.where_first(Player.name == name)

    def find_by_ids(self, player_ids: List[int]) -> List[Player]:
        if not player_ids:
            return []
        return self.where(Player.id.in_(player_ids))

    def match_count(self, player_id: int) -> int:
        """Number of matches the player appears in."""
        return self.db.query(Match).filter(self._involves(player_id)).count()

    def delete_with_matches(self, player: Player) -> int:
        """
        Delete a player together with every match they played.

        Returns:
            Number of matches removed
        """
        removed = self.db.query(Match).filter(
            self._involves(player.id)
        ).delete(synchronize_session=False)
        # Roster entries go through the season_entries cascade
        self.db.delete(player)
        return removed

    @staticmethod
    def _involves(player_id: int):
        return or_(
            Match.player1_id == player_id,
            Match.player2_id == player_id,
            Match.player3_id == player_id,
            Match.player4_id == player_id,
        )
