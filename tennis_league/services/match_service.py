"""
Service for recording and listing matches.

Validation applied to every create/update:
- the season exists
- duo: four pairwise-distinct players in slots 1-4
- solo: two distinct players in slots 1 and 3, slots 2 and 4 empty
- every player exists and, when the season has a roster, is on it
- scores are non-negative and winning_team is 1 or 2; when the scores differ
  the winner must be the side with the higher score
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Dict

from sqlalchemy.orm import Session

from tennis_league.core.errors import NotFoundError, ValidationError
from tennis_league.models import Match, MATCH_TYPE_DUO, MATCH_TYPE_SOLO
from tennis_league.repositories import MatchRepository, PlayerRepository, SeasonRepository

logger = logging.getLogger(__name__)

MATCH_TYPES = (MATCH_TYPE_DUO, MATCH_TYPE_SOLO)


def _name(player) -> Optional[str]:
    return player.name if player is not None else None


def resolve_winning_team(team1_score: int, team2_score: int, winning_team: Optional[int]) -> int:
    """The given winner, or the side with the higher score when none is given."""
    if winning_team is not None:
        return winning_team
    if team1_score == team2_score:
        raise ValidationError("winning_team is required when the scores are level")
    return 1 if team1_score > team2_score else 2


def match_to_dict(match: Match) -> Dict:
    return {
        "id": match.id,
        "season_id": match.season_id,
        "season_name": match.season.name if match.season else None,
        "play_date": match.play_date.isoformat(),
        "match_type": match.match_type,
        "player1_id": match.player1_id,
        "player2_id": match.player2_id,
        "player3_id": match.player3_id,
        "player4_id": match.player4_id,
        "player1_name": _name(match.player1),
        "player2_name": _name(match.player2),
        "player3_name": _name(match.player3),
        "player4_name": _name(match.player4),
        "team1_score": match.team1_score,
        "team2_score": match.team2_score,
        "winning_team": match.winning_team,
        "created_at": match.created_at.isoformat() if match.created_at else None,
    }


class MatchService:
    """Validates and stores match results."""

    def __init__(self, db: Session):
        self.db = db
        self.matches = MatchRepository(db)
        self.players = PlayerRepository(db)
        self.seasons = SeasonRepository(db)

    # ========================================================================
    # Reads
    # ========================================================================

    def list_matches(self, limit: Optional[int] = None) -> List[Dict]:
        return [match_to_dict(m) for m in self.matches.list_recent(limit)]

    def get_match(self, match_id: int) -> Dict:
        match = self.matches.find_with_names(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        return match_to_dict(match)

    def matches_by_date(self, play_date: date) -> List[Dict]:
        return [match_to_dict(m) for m in self.matches.list_by_play_date(play_date)]

    def matches_by_season(self, season_id: int) -> List[Dict]:
        if self.seasons.find_by_id(season_id) is None:
            raise NotFoundError(f"Season {season_id} not found")
        return [match_to_dict(m) for m in self.matches.list_by_season(season_id)]

    def play_dates(self) -> List[str]:
        return [d.isoformat() for d in self.matches.play_dates()]

    def latest_play_date(self) -> Optional[str]:
        latest = self.matches.latest_play_date()
        return latest.isoformat() if latest else None

    # ========================================================================
    # Writes
    # ========================================================================

    def _validate(
        self,
        season_id: int,
        player_ids: List[Optional[int]],
        team1_score: int,
        team2_score: int,
        winning_team: int,
        match_type: str,
    ) -> None:
        if match_type not in MATCH_TYPES:
            raise ValidationError(f"match_type must be one of {', '.join(MATCH_TYPES)}")

        p1, p2, p3, p4 = player_ids
        if match_type == MATCH_TYPE_SOLO:
            if p2 is not None or p4 is not None:
                raise ValidationError("Solo matches use player slots 1 and 3 only")
            if p1 is None or p3 is None:
                raise ValidationError("Solo matches need players in slots 1 and 3")
            used = [p1, p3]
        else:
            if None in player_ids:
                raise ValidationError("Duo matches need four players")
            used = [p1, p2, p3, p4]

        if len(set(used)) != len(used):
            raise ValidationError("All players must be different")

        if winning_team not in (1, 2):
            raise ValidationError("Winning team must be 1 or 2")
        if team1_score < 0 or team2_score < 0:
            raise ValidationError("Scores must be non-negative")
        if team1_score != team2_score:
            expected = 1 if team1_score > team2_score else 2
            if winning_team != expected:
                raise ValidationError(
                    f"Winning team {winning_team} does not match score {team1_score}-{team2_score}"
                )

        if self.seasons.find_by_id(season_id) is None:
            raise NotFoundError(f"Season {season_id} not found")

        known = {p.id for p in self.players.find_by_ids(used)}
        missing = sorted(set(used) - known)
        if missing:
            raise NotFoundError("Unknown players", details={"player_ids": missing})

        roster = self.seasons.roster_player_ids(season_id)
        if roster:
            outside = sorted(set(used) - roster)
            if outside:
                raise ValidationError(
                    f"Players are not on the roster of season {season_id}",
                    details={"player_ids": outside},
                )

    def create_match(
        self,
        season_id: int,
        play_date: date,
        player1_id: int,
        player2_id: Optional[int],
        player3_id: int,
        player4_id: Optional[int],
        team1_score: int,
        team2_score: int,
        winning_team: Optional[int] = None,
        match_type: str = MATCH_TYPE_DUO,
    ) -> Dict:
        """
        Record a match.

        Raises:
            ValidationError: player/score/roster rules violated
            NotFoundError: unknown season or player
        """
        winning_team = resolve_winning_team(team1_score, team2_score, winning_team)
        player_ids = [player1_id, player2_id, player3_id, player4_id]
        self._validate(season_id, player_ids, team1_score, team2_score, winning_team, match_type)

        match = Match(
            season_id=season_id,
            play_date=play_date,
            player1_id=player1_id,
            player2_id=player2_id,
            player3_id=player3_id,
            player4_id=player4_id,
            team1_score=team1_score,
            team2_score=team2_score,
            winning_team=winning_team,
            match_type=match_type,
            created_at=datetime.utcnow(),
        )
        self.db.add(match)
        self.db.commit()

        logger.info(
            f"Recorded {match_type} match {match.id} on {play_date} "
            f"(season {season_id}, {team1_score}-{team2_score})"
        )
        return self.get_match(match.id)

    def update_match(
        self,
        match_id: int,
        season_id: int,
        play_date: date,
        player1_id: int,
        player2_id: Optional[int],
        player3_id: int,
        player4_id: Optional[int],
        team1_score: int,
        team2_score: int,
        winning_team: Optional[int] = None,
        match_type: str = MATCH_TYPE_DUO,
    ) -> Dict:
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        winning_team = resolve_winning_team(team1_score, team2_score, winning_team)
        player_ids = [player1_id, player2_id, player3_id, player4_id]
        self._validate(season_id, player_ids, team1_score, team2_score, winning_team, match_type)

        self.matches.update(
            match,
            season_id=season_id,
            play_date=play_date,
            player1_id=player1_id,
            player2_id=player2_id,
            player3_id=player3_id,
            player4_id=player4_id,
            team1_score=team1_score,
            team2_score=team2_score,
            winning_team=winning_team,
            match_type=match_type,
        )
        self.db.commit()

        logger.info(f"Updated match {match_id}")
        return self.get_match(match_id)

    def delete_match(self, match_id: int) -> Dict:
        match = self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        self.matches.delete(match)
        self.db.commit()

        logger.info(f"Deleted match {match_id}")
        return {"id": match_id}
