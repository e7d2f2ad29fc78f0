"""
Ranking aggregation.

Turns the matches of one scope into an ordered leaderboard. Pure: the caller
supplies the matches, the players and a fee lookup, so the same input always
yields the same table.

Scoring per player and match:
- win  -> +4 points
- loss -> +1 point, plus the loss fee of the match's season

Table order: points desc, win percentage desc, name asc, player id asc.
Players without a match in scope do not appear.
"""
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Callable, Deque, Dict, Iterable, List, Optional, Protocol

POINTS_PER_WIN = 4
POINTS_PER_LOSS = 1
DEFAULT_FORM_LENGTH = 5

RESULT_WIN = "win"
RESULT_LOSS = "loss"


class MatchRecord(Protocol):
    """What the aggregator reads from a match (satisfied by models.Match)."""

    id: int
    season_id: int
    play_date: date
    created_at: Optional[datetime]
    winning_team: int
    team1_ids: List[int]
    team2_ids: List[int]


class PlayerRecord(Protocol):
    id: int
    name: str


@dataclass(frozen=True)
class FormEntry:
    """One recent result from a player's point of view."""

    result: str
    play_date: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RankingRow:
    """A player's line in a ranking table."""

    id: int
    name: str
    wins: int = 0
    losses: int = 0
    total_matches: int = 0
    points: int = 0
    win_percentage: int = 0
    money_lost: int = 0
    form: List[FormEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["form"] = [entry.to_dict() for entry in self.form]
        return data


def win_percentage(wins: int, total: int) -> int:
    """wins / total as a whole percentage, rounded half up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (wins * 200 + total) // (2 * total)


def _chronological_key(match: MatchRecord):
    created = match.created_at or datetime.min
    return (match.play_date, created, match.id)


def _play_date_text(value) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def sort_rows(rows: Iterable[RankingRow]) -> List[RankingRow]:
    """Apply the table order (stable and total)."""
    return sorted(
        rows,
        key=lambda row: (-row.points, -row.win_percentage, row.name, row.id),
    )


def aggregate_rankings(
    matches: Iterable[MatchRecord],
    players: Iterable[PlayerRecord],
    fee_for_season: Callable[[int], int],
    form_length: int = DEFAULT_FORM_LENGTH,
) -> List[RankingRow]:
    """
    Build the ordered ranking table for one scope.

    Args:
        matches: Every match in the scope (any order)
        players: Known players; match slots pointing elsewhere are ignored
        fee_for_season: Loss fee for a season id
        form_length: How many recent results to keep per player

    Returns:
        Ranking rows, best first
    """
    names: Dict[int, str] = {player.id: player.name for player in players}
    rows: Dict[int, RankingRow] = {}
    recent: Dict[int, Deque[FormEntry]] = {}
    fees: Dict[int, int] = {}

    for match in sorted(matches, key=_chronological_key):
        if match.winning_team == 1:
            winners, losers = match.team1_ids, match.team2_ids
        elif match.winning_team == 2:
            winners, losers = match.team2_ids, match.team1_ids
        else:
            raise ValueError(f"Match {match.id} has invalid winning_team {match.winning_team!r}")

        if match.season_id not in fees:
            fees[match.season_id] = fee_for_season(match.season_id)
        fee = fees[match.season_id]
        played_on = _play_date_text(match.play_date)

        for player_id, won in [(pid, True) for pid in winners] + [(pid, False) for pid in losers]:
            if player_id not in names:
                continue

            row = rows.get(player_id)
            if row is None:
                row = rows[player_id] = RankingRow(id=player_id, name=names[player_id])
                recent[player_id] = deque(maxlen=max(form_length, 0))

            row.total_matches += 1
            if won:
                row.wins += 1
            else:
                row.losses += 1
                row.money_lost += fee

            recent[player_id].append(FormEntry(RESULT_WIN if won else RESULT_LOSS, played_on))

    for player_id, row in rows.items():
        row.points = row.wins * POINTS_PER_WIN + row.losses * POINTS_PER_LOSS
        row.win_percentage = win_percentage(row.wins, row.total_matches)
        row.form = list(recent[player_id])

    return sort_rows(rows.values())
