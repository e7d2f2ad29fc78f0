"""
Season Repository for seasons and their rosters.

Usage:
    repo = SeasonRepository(db)
    active = repo.find_active()
    fee = repo.get_loss_fee(season_id, default=20000)
"""
from datetime import date
from typing import Optional, List, Dict

from tennis_league.models import Season, SeasonPlayer, Player
from tennis_league.repositories.base import BaseRepository


class SeasonRepository(BaseRepository[Season]):
    """Repository for league seasons."""

    def __init__(self, db):
        super().__init__(Season, db)

    # ========================================================================
    # Lookups
    # ========================================================================

    def list_all(self) -> List[Season]:
        """Active season first, then newest start date."""
        return self.query().order_by(
            Season.is_active.desc(), Season.start_date.desc(), Season.id.desc()
        ).all()

    def find_active(self) -> Optional[Season]:
        """The active season (newest start date if several slipped through)."""
        return self.query().filter(Season.is_active.is_(True)).order_by(
            Season.start_date.desc(), Season.id.desc()
        ).first()

    def find_expired(self, today: date) -> List[Season]:
        """Active auto-ending seasons whose end date has passed."""
        return self.query().filter(
            Season.is_active.is_(True),
            Season.auto_end.is_(True),
            Season.end_date.isnot(None),
            Season.end_date < today,
        ).all()

    # ========================================================================
    # Fees
    # ========================================================================

    def get_loss_fee(self, season_id: int, default: int) -> int:
        """Per-loss fee for a season: its override, else `default`."""
        fee = self.db.query(Season.loss_fee).filter(Season.id == season_id).scalar()
        return default if fee is None else int(fee)

    def loss_fees(self, default: int) -> Dict[int, int]:
        """Fee for every season, keyed by season id."""
        rows = self.db.query(Season.id, Season.loss_fee).all()
        return {season_id: default if fee is None else int(fee) for season_id, fee in rows}

    # ========================================================================
    # Activation
    # ========================================================================

    def deactivate_others(self, keep_season_id: Optional[int] = None) -> int:
        """Mark every other active season inactive. Returns rows changed."""
        query = self.query().filter(Season.is_active.is_(True))
        if keep_season_id is not None:
            query = query.filter(Season.id != keep_season_id)
        return query.update({Season.is_active: False}, synchronize_session="fetch")

    # ========================================================================
    # Roster
    # ========================================================================

    def roster(self, season_id: int) -> List[SeasonPlayer]:
        return self.db.query(SeasonPlayer).join(Player).filter(
            SeasonPlayer.season_id == season_id
        ).order_by(Player.name).all()

    def roster_player_ids(self, season_id: int) -> set[int]:
        rows = self.db.query(SeasonPlayer.player_id).filter(
            SeasonPlayer.season_id == season_id
        ).all()
        return {player_id for (player_id,) in rows}

    def find_roster_entry(self, season_id: int, player_id: int) -> Optional[SeasonPlayer]:
        return self.db.query(SeasonPlayer).filter(
            SeasonPlayer.season_id == season_id,
            SeasonPlayer.player_id == player_id,
        ).first()

    def add_to_roster(self, season_id: int, player_id: int, added_by: Optional[str] = None) -> Optional[SeasonPlayer]:
        """Add a player to the roster; None if already on it."""
        if self.find_roster_entry(season_id, player_id):
            return None
        entry = SeasonPlayer(season_id=season_id, player_id=player_id, added_by=added_by)
        self.db.add(entry)
        self.db.flush()
        return entry

    def remove_from_roster(self, season_id: int, player_id: int) -> bool:
        removed = self.db.query(SeasonPlayer).filter(
            SeasonPlayer.season_id == season_id,
            SeasonPlayer.player_id == player_id,
        ).delete(synchronize_session=False)
        return removed > 0

    def replace_roster(self, season_id: int, player_ids: List[int], added_by: Optional[str] = None) -> None:
        self.db.query(SeasonPlayer).filter(
            SeasonPlayer.season_id == season_id
        ).delete(synchronize_session=False)
        for player_id in dict.fromkeys(player_ids):
            self.db.add(SeasonPlayer(season_id=season_id, player_id=player_id, added_by=added_by))
