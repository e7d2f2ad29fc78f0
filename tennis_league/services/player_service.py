"""
Service for league players.
"""
import logging
from typing import List, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tennis_league.core.errors import ConflictError, NotFoundError, ValidationError
from tennis_league.models import Player
from tennis_league.repositories import PlayerRepository

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


def player_to_dict(player: Player) -> Dict:
    return {
        "id": player.id,
        "name": player.name,
        "created_at": player.created_at.isoformat() if player.created_at else None,
    }


class PlayerService:
    """Adds, lists and removes players."""

    def __init__(self, db: Session):
        self.db = db
        self.players = PlayerRepository(db)

    def list_players(self) -> List[Dict]:
        return [player_to_dict(p) for p in self.players.list_all()]

    def add_player(self, name: str) -> Dict:
        """
        Create a player.

        Raises:
            ValidationError: blank or over-long name
            ConflictError: a player with that name already exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Player name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Player name must be at most {MAX_NAME_LENGTH} characters")

        if self.players.find_by_name(name):
            raise ConflictError(f"Player {name!r} already exists")

        player = Player(name=name)
        self.db.add(player)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same name
            self.db.rollback()
            raise ConflictError(f"Player {name!r} already exists")

        self.db.refresh(player)
        logger.info(f"Added player {player.id} ({player.name})")
        return player_to_dict(player)

    def remove_player(self, player_id: int) -> Dict:
        """
        Delete a player and every match they played.

        Raises:
            NotFoundError: unknown player id
        """
        player = self.players.find_by_id(player_id)
        if player is None:
            raise NotFoundError(f"Player {player_id} not found")

        name = player.name
        removed_matches = self.players.delete_with_matches(player)
        self.db.commit()

        logger.info(f"Removed player {player_id} ({name}) and {removed_matches} matches")
        return {"id": player_id, "name": name, "matches_removed": removed_matches}
