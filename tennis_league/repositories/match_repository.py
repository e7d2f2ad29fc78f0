"""
Match Repository.

`list_for_scope` is the read the ranking aggregator depends on; everything
else serves the match list views.

Usage:
    repo = MatchRepository(db)
    matches = repo.list_for_scope(RankingScope.for_season(3))
    dates = repo.play_dates()
"""
from datetime import date
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from tennis_league.models import Match
from tennis_league.repositories.base import BaseRepository
from tennis_league.services.ranking.scope import RankingScope, ScopeKind


class MatchRepository(BaseRepository[Match]):
    """Repository for played matches."""

    def __init__(self, db):
        super().__init__(Match, db)

    def _with_names(self):
        return self.query().options(
            joinedload(Match.season),
            joinedload(Match.player1),
            joinedload(Match.player2),
            joinedload(Match.player3),
            joinedload(Match.player4),
        )

    # ========================================================================
    # Ranking reads
    # ========================================================================

    def list_for_scope(self, scope: RankingScope) -> List[Match]:
        """
        Matches inside a ranking scope, oldest first.

        Order is (play_date, created_at, id) so that "recent form" can take
        the tail of the list.
        """
        query = self.query()

        if scope.kind is ScopeKind.SEASON:
            query = query.filter(Match.season_id == scope.season_id)
        elif scope.kind is ScopeKind.DATE:
            query = query.filter(Match.play_date == scope.play_date)

        return query.order_by(Match.play_date, Match.created_at, Match.id).all()

    # ========================================================================
    # Listing
    # ========================================================================

    def list_recent(self, limit: Optional[int] = None) -> List[Match]:
        """Newest first, with season and player names loaded."""
        query = self._with_names().order_by(
            Match.play_date.desc(), Match.created_at.desc(), Match.id.desc()
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def list_by_play_date(self, play_date: date) -> List[Match]:
        return self._with_names().filter(Match.play_date == play_date).order_by(
            Match.created_at.desc(), Match.id.desc()
        ).all()

    def list_by_season(self, season_id: int) -> List[Match]:
        return self._with_names().filter(Match.season_id == season_id).order_by(
            Match.play_date.desc(), Match.created_at.desc(), Match.id.desc()
        ).all()

    def find_with_names(self, match_id: int) -> Optional[Match]:
        return self._with_names().filter(Match.id == match_id).first()

    # ========================================================================
    # Play dates
    # ========================================================================

    def play_dates(self) -> List[date]:
        """Distinct play dates, newest first."""
        rows = self.db.query(Match.play_date).distinct().order_by(Match.play_date.desc()).all()
        return [play_date for (play_date,) in rows]

    def latest_play_date(self) -> Optional[date]:
        return self.db.query(func.max(Match.play_date)).scalar()
