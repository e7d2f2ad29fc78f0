"""
Excel export of league data and ranking tables.

Workbooks are built with pandas `DataFrame.to_excel` on an openpyxl
`ExcelWriter` into memory and returned as bytes for the HTTP layer.

Exports:
- full backup: players, seasons, matches, lifetime rankings
- lifetime: lifetime rankings
- season: season rankings and that season's matches
- date: rankings and matches of one play date
"""
import io
import logging
import re
from datetime import date
from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from tennis_league.core.errors import NotFoundError
from tennis_league.services.match_service import MatchService
from tennis_league.services.player_service import PlayerService
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.scope import RankingScope
from tennis_league.services.ranking.service import RankingService
from tennis_league.services.season_service import SeasonService

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MAX_SHEET_NAME_LENGTH = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")

RANKING_COLUMNS = [
    ("rank", "Rank"),
    ("name", "Player"),
    ("wins", "Wins"),
    ("losses", "Losses"),
    ("total_matches", "Matches"),
    ("points", "Points"),
    ("win_percentage", "Win %"),
    ("money_lost", "Money Lost"),
    ("form_text", "Recent Form"),
]

MATCH_COLUMNS = [
    ("id", "ID"),
    ("season_name", "Season"),
    ("play_date", "Play Date"),
    ("match_type", "Type"),
    ("player1_name", "Player 1"),
    ("player2_name", "Player 2"),
    ("player3_name", "Player 3"),
    ("player4_name", "Player 4"),
    ("team1_score", "Team 1 Score"),
    ("team2_score", "Team 2 Score"),
    ("winning_team", "Winning Team"),
    ("created_at", "Created At"),
]

PLAYER_COLUMNS = [("id", "ID"), ("name", "Name"), ("created_at", "Created At")]

SEASON_COLUMNS = [
    ("id", "ID"),
    ("name", "Season"),
    ("start_date", "Start Date"),
    ("end_date", "End Date"),
    ("is_active", "Active"),
    ("auto_end", "Auto End"),
    ("effective_loss_fee", "Loss Fee"),
    ("created_at", "Created At"),
]


def sheet_name(title: str) -> str:
    """Excel-safe sheet title: no []:*?/\\ and at most 31 characters."""
    cleaned = _INVALID_SHEET_CHARS.sub("-", title).strip() or "Sheet"
    return cleaned[:MAX_SHEET_NAME_LENGTH]


def form_text(form: List[dict]) -> str:
    """Recent form as 'W L W', oldest first."""
    return " ".join("W" if entry["result"] == "win" else "L" for entry in form)


def _frame(records: List[dict], columns: List[Tuple[str, str]]) -> pd.DataFrame:
    keys = [key for key, _ in columns]
    df = pd.DataFrame(records, columns=keys)
    return df.rename(columns=dict(columns))


def rankings_frame(rows: List[dict]) -> pd.DataFrame:
    records = [
        {**row, "rank": position, "form_text": form_text(row.get("form", []))}
        for position, row in enumerate(rows, start=1)
    ]
    return _frame(records, RANKING_COLUMNS)


def build_workbook(sheets: Dict[str, pd.DataFrame]) -> bytes:
    """Write each frame to its own sheet, in insertion order."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for title, df in sheets.items():
            df.to_excel(writer, sheet_name=sheet_name(title), index=False)
    return buffer.getvalue()


class ExportService:
    """
    Builds XLSX exports. Ranking sheets go through the ranking cache.

    Returns (filename, bytes) pairs.
    """

    def __init__(self, db: Session, cache: Optional[RankingCache], app_settings):
        self.db = db
        self.settings = app_settings
        self.rankings = RankingService(db, cache, app_settings)
        self.players = PlayerService(db)
        self.seasons = SeasonService(db, default_loss_fee=app_settings.DEFAULT_LOSS_FEE)
        self.matches = MatchService(db)

    def _ranking_rows(self, scope: RankingScope) -> List[dict]:
        return self.rankings.get_rankings(scope).rows

    def export_all(self, today: Optional[date] = None) -> Tuple[str, bytes]:
        today = today or date.today()
        sheets = {
            "Players": _frame(self.players.list_players(), PLAYER_COLUMNS),
            "Seasons": _frame(self.seasons.list_seasons(), SEASON_COLUMNS),
            "Matches": _frame(self.matches.list_matches(), MATCH_COLUMNS),
            "Lifetime Rankings": rankings_frame(self._ranking_rows(RankingScope.lifetime())),
        }
        logger.info(f"Exporting full backup ({len(sheets)} sheets)")
        return f"tennis-league-{today.isoformat()}.xlsx", build_workbook(sheets)

    def export_lifetime(self, today: Optional[date] = None) -> Tuple[str, bytes]:
        today = today or date.today()
        sheets = {"Lifetime Rankings": rankings_frame(self._ranking_rows(RankingScope.lifetime()))}
        return f"tennis-rankings-lifetime-{today.isoformat()}.xlsx", build_workbook(sheets)

    def export_season(self, season_id: int) -> Tuple[str, bytes]:
        season = self.seasons.seasons.find_by_id(season_id)
        if season is None:
            raise NotFoundError(f"Season {season_id} not found")

        rows = self._ranking_rows(RankingScope.for_season(season_id))
        sheets = {
            f"Rankings - {season.name}": rankings_frame(rows),
            f"Matches - {season.name}": _frame(self.matches.matches_by_season(season_id), MATCH_COLUMNS),
        }
        return f"tennis-rankings-season-{season_id}.xlsx", build_workbook(sheets)

    def export_date(self, play_date: date) -> Tuple[str, bytes]:
        day = play_date.isoformat()
        rows = self._ranking_rows(RankingScope.for_date(play_date))
        sheets = {
            f"Rankings - {day}": rankings_frame(rows),
            f"Matches - {day}": _frame(self.matches.matches_by_date(play_date), MATCH_COLUMNS),
        }
        return f"tennis-rankings-{day}.xlsx", build_workbook(sheets)
