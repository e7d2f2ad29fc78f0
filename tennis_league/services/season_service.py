"""
Service for seasons and season rosters.

Lifecycle rules:
- At most one season is active. Creating or reactivating a season
  deactivates every other one.
- A season whose end date already lies in the past is created inactive.
- Ending sets end_date (today by default) and clears is_active.
- Only inactive seasons can be deleted; their matches and roster go with them.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Dict

from sqlalchemy.orm import Session

from tennis_league.core.errors import ConflictError, NotFoundError, ValidationError
from tennis_league.models import Season
from tennis_league.repositories import PlayerRepository, SeasonRepository

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def season_to_dict(season: Season, default_loss_fee: Optional[int] = None) -> Dict:
    data = {
        "id": season.id,
        "name": season.name,
        "start_date": _iso(season.start_date),
        "end_date": _iso(season.end_date),
        "is_active": bool(season.is_active),
        "auto_end": bool(season.auto_end),
        "description": season.description or "",
        "loss_fee": season.loss_fee,
        "created_at": _iso(season.created_at),
        "ended_at": _iso(season.ended_at),
        "ended_by": season.ended_by,
    }
    if default_loss_fee is not None:
        data["effective_loss_fee"] = default_loss_fee if season.loss_fee is None else season.loss_fee
    return data


class SeasonService:
    """
    Season lifecycle and roster management.

    Args:
        db: SQLAlchemy session
        default_loss_fee: Fee applied to seasons without an override
    """

    def __init__(self, db: Session, default_loss_fee: int = 20000):
        self.db = db
        self.default_loss_fee = default_loss_fee
        self.seasons = SeasonRepository(db)
        self.players = PlayerRepository(db)

    def _to_dict(self, season: Season) -> Dict:
        return season_to_dict(season, self.default_loss_fee)

    def _get(self, season_id: int) -> Season:
        season = self.seasons.find_by_id(season_id)
        if season is None:
            raise NotFoundError(f"Season {season_id} not found")
        return season

    @staticmethod
    def _check_dates(start_date: date, end_date: Optional[date], auto_end: bool) -> None:
        if auto_end and end_date is None:
            raise ValidationError("Auto-end requires an end date to be set")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date must not be before start date")

    # ========================================================================
    # Reads
    # ========================================================================

    def list_seasons(self) -> List[Dict]:
        return [self._to_dict(s) for s in self.seasons.list_all()]

    def get_season(self, season_id: int) -> Dict:
        return self._to_dict(self._get(season_id))

    def get_active_season(self) -> Optional[Dict]:
        season = self.seasons.find_active()
        return self._to_dict(season) if season else None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def create_season(
        self,
        name: str,
        start_date: date,
        end_date: Optional[date] = None,
        auto_end: bool = False,
        description: str = "",
        loss_fee: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Dict:
        """
        Create a season. It starts active (deactivating the others) unless
        its end date has already passed.
        """
        today = today or date.today()
        self._check_dates(start_date, end_date, auto_end)

        # Close out anything that expired before we pick the active season
        self._end_expired(today)

        is_active = end_date is None or end_date >= today
        if is_active:
            self.seasons.deactivate_others()

        season = Season(
            name=name.strip(),
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
            auto_end=auto_end,
            description=description or "",
            loss_fee=loss_fee,
        )
        self.db.add(season)
        self.db.commit()
        self.db.refresh(season)

        logger.info(f"Created season {season.id} ({season.name}), active={season.is_active}")
        return self._to_dict(season)

    def update_season(
        self,
        season_id: int,
        name: str,
        start_date: date,
        end_date: Optional[date] = None,
        auto_end: bool = False,
        description: str = "",
        loss_fee: Optional[int] = None,
    ) -> Dict:
        season = self._get(season_id)
        self._check_dates(start_date, end_date, auto_end)

        season.name = name.strip()
        season.start_date = start_date
        season.end_date = end_date
        season.auto_end = auto_end
        season.description = description or ""
        season.loss_fee = loss_fee
        self.db.commit()
        self.db.refresh(season)

        logger.info(f"Updated season {season_id}")
        return self._to_dict(season)

    def end_season(self, season_id: int, end_date: Optional[date] = None, ended_by: Optional[str] = None) -> Dict:
        season = self._get(season_id)
        if end_date is None:
            # A season that has not started yet ends on its start date
            end_date = max(date.today(), season.start_date)
        elif end_date < season.start_date:
            raise ValidationError("End date must not be before start date")

        season.end_date = end_date
        season.is_active = False
        season.ended_at = datetime.utcnow()
        season.ended_by = ended_by
        self.db.commit()
        self.db.refresh(season)

        logger.info(f"Ended season {season_id} on {end_date} (by {ended_by or 'unknown'})")
        return self._to_dict(season)

    def reactivate_season(self, season_id: int) -> Dict:
        season = self._get(season_id)
        if season.is_active:
            raise ValidationError("Season is already active")

        self.seasons.deactivate_others(keep_season_id=season_id)
        season.is_active = True
        season.ended_at = None
        season.ended_by = None
        self.db.commit()
        self.db.refresh(season)

        logger.info(f"Reactivated season {season_id}")
        return self._to_dict(season)

    def delete_season(self, season_id: int) -> Dict:
        season = self._get(season_id)
        if season.is_active:
            raise ValidationError("Cannot delete active season. Please end the season first.")

        match_count = len(season.matches)
        name = season.name
        self.seasons.delete(season)
        self.db.commit()

        logger.info(f"Deleted season {season_id} ({name}) with {match_count} matches")
        return {"id": season_id, "name": name, "matches_removed": match_count}

    def check_expired(self, today: Optional[date] = None) -> List[Dict]:
        """End every auto-ending season whose end date has passed."""
        ended = self._end_expired(today or date.today())
        if ended:
            self.db.commit()
        return [self._to_dict(s) for s in ended]

    def _end_expired(self, today: date) -> List[Season]:
        expired = self.seasons.find_expired(today)
        now = datetime.utcnow()
        for season in expired:
            season.is_active = False
            season.ended_at = now
            season.ended_by = SYSTEM_USER
            logger.info(f"Auto-ending season {season.id} ({season.name}), end date {season.end_date}")
        if expired:
            self.db.flush()
        return expired

    # ========================================================================
    # Roster
    # ========================================================================

    def get_roster(self, season_id: int) -> List[Dict]:
        self._get(season_id)
        return [
            {
                "player_id": entry.player_id,
                "name": entry.player.name,
                "added_at": _iso(entry.added_at),
                "added_by": entry.added_by,
            }
            for entry in self.seasons.roster(season_id)
        ]

    def _require_players(self, player_ids: List[int]) -> None:
        unique_ids = set(player_ids)
        found = {p.id for p in self.players.find_by_ids(list(unique_ids))}
        missing = sorted(unique_ids - found)
        if missing:
            raise NotFoundError("Unknown players", details={"player_ids": missing})

    def set_roster(self, season_id: int, player_ids: List[int], added_by: Optional[str] = None) -> List[Dict]:
        """Replace the roster. An empty list opens the season to everyone."""
        self._get(season_id)
        self._require_players(player_ids)
        self.seasons.replace_roster(season_id, player_ids, added_by=added_by)
        self.db.commit()
        logger.info(f"Set roster of season {season_id} to {len(set(player_ids))} players")
        return self.get_roster(season_id)

    def add_roster_player(self, season_id: int, player_id: int, added_by: Optional[str] = None) -> Dict:
        self._get(season_id)
        self._require_players([player_id])
        entry = self.seasons.add_to_roster(season_id, player_id, added_by=added_by)
        if entry is None:
            raise ConflictError(f"Player {player_id} is already on season {season_id}")
        self.db.commit()
        return {"season_id": season_id, "player_id": player_id}

    def remove_roster_player(self, season_id: int, player_id: int) -> Dict:
        self._get(season_id)
        if not self.seasons.remove_from_roster(season_id, player_id):
            raise NotFoundError(f"Player {player_id} is not on season {season_id}")
        self.db.commit()
        return {"season_id": season_id, "player_id": player_id}
