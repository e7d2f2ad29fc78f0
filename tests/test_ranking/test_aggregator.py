"""Unit tests for the ranking aggregator.

Test Strategy:
1. Points, wins, losses and money for single matches
2. Per-season loss fees (lifetime mixes seasons)
3. Ordering and tie-breaks
4. Recent form (oldest-first, bounded)
5. Conservation: totals across the table match the match log
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

import pytest

from tennis_league.services.ranking.aggregator import (
    aggregate_rankings,
    win_percentage,
    sort_rows,
    RankingRow,
    POINTS_PER_WIN,
    POINTS_PER_LOSS,
)


@dataclass
class FakePlayer:
    id: int
    name: str


@dataclass
class FakeMatch:
    id: int
    season_id: int
    play_date: date
    winning_team: int
    team1_ids: List[int]
    team2_ids: List[int]
    created_at: Optional[datetime] = None


A, B, C, D, E = 1, 2, 3, 4, 5
PLAYERS = [
    FakePlayer(A, "Anna"),
    FakePlayer(B, "Binh"),
    FakePlayer(C, "Chi"),
    FakePlayer(D, "Dung"),
    FakePlayer(E, "Em"),
]
DAY = date(2026, 3, 7)


def flat_fee(fee=20000):
    return lambda season_id: fee


def by_name(rows):
    return {row.name: row for row in rows}


class TestWinPercentage:

    def test_zero_matches_is_zero(self):
        assert win_percentage(0, 0) == 0

    def test_three_of_four_is_75(self):
        assert win_percentage(3, 4) == 75

    def test_rounds_half_up(self):
        # 1/8 = 12.5% -> 13, 2/3 = 66.67% -> 67, 1/3 = 33.33% -> 33
        assert win_percentage(1, 8) == 13
        assert win_percentage(2, 3) == 67
        assert win_percentage(1, 3) == 33

    def test_all_wins_is_100(self):
        assert win_percentage(5, 5) == 100


class TestSingleMatch:

    def test_doubles_win_and_loss(self):
        """A+B beat C+D 6-2: winners 4 pts/100%, losers 1 pt/0% and one fee."""
        matches = [FakeMatch(1, 1, DAY, 1, [A, B], [C, D])]

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee()))

        for name in ("Anna", "Binh"):
            row = rows[name]
            assert (row.wins, row.losses, row.total_matches) == (1, 0, 1)
            assert row.points == 4
            assert row.win_percentage == 100
            assert row.money_lost == 0

        for name in ("Chi", "Dung"):
            row = rows[name]
            assert (row.wins, row.losses, row.total_matches) == (0, 1, 1)
            assert row.points == 1
            assert row.win_percentage == 0
            assert row.money_lost == 20000

    def test_team_two_win(self):
        matches = [FakeMatch(1, 1, DAY, 2, [A, B], [C, D])]

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee()))

        assert rows["Chi"].wins == 1
        assert rows["Anna"].losses == 1

    def test_season_fee_override(self):
        """A season charging 50000 per loss."""
        matches = [FakeMatch(1, 7, DAY, 1, [A, B], [C, D])]
        fees = {7: 50000}

        rows = by_name(aggregate_rankings(matches, PLAYERS, lambda sid: fees.get(sid, 20000)))

        assert rows["Chi"].money_lost == 50000
        assert rows["Dung"].money_lost == 50000
        assert rows["Anna"].money_lost == 0

    def test_solo_match_counts_two_players(self):
        matches = [FakeMatch(1, 1, DAY, 1, [A], [C])]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        assert [row.name for row in rows] == ["Anna", "Chi"]

    def test_invalid_winning_team_raises(self):
        matches = [FakeMatch(9, 1, DAY, 3, [A, B], [C, D])]

        with pytest.raises(ValueError):
            aggregate_rankings(matches, PLAYERS, flat_fee())


class TestScopeContents:

    def test_no_matches_gives_empty_table(self):
        assert aggregate_rankings([], PLAYERS, flat_fee()) == []

    def test_players_without_matches_are_excluded(self):
        matches = [FakeMatch(1, 1, DAY, 1, [A, B], [C, D])]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        assert "Em" not in {row.name for row in rows}
        assert len(rows) == 4

    def test_unknown_player_ids_are_skipped(self):
        matches = [FakeMatch(1, 1, DAY, 1, [A, 99], [C, D])]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        assert {row.id for row in rows} == {A, C, D}

    def test_lifetime_uses_fee_of_each_match_season(self):
        matches = [
            FakeMatch(1, 1, DAY, 1, [A, B], [C, D]),
            FakeMatch(2, 2, date(2026, 6, 1), 1, [A, B], [C, D]),
        ]
        fees = {1: 20000, 2: 50000}

        rows = by_name(aggregate_rankings(matches, PLAYERS, fees.__getitem__))

        assert rows["Chi"].money_lost == 70000

    def test_fee_lookup_once_per_season(self):
        calls = []

        def fee(season_id):
            calls.append(season_id)
            return 20000

        matches = [FakeMatch(i, 1, DAY, 1, [A, B], [C, D]) for i in range(1, 6)]
        aggregate_rankings(matches, PLAYERS, fee)

        assert calls == [1]


class TestOrdering:

    def test_points_descending(self):
        matches = [
            FakeMatch(1, 1, DAY, 1, [A, B], [C, D]),
            FakeMatch(2, 1, DAY, 1, [A, C], [B, D]),
        ]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        # Anna 8, Binh 5, Chi 5, Dung 2
        assert rows[0].name == "Anna"
        assert rows[-1].name == "Dung"

    def test_equal_points_and_percentage_sorted_by_name(self):
        matches = [FakeMatch(1, 1, DAY, 1, [D, B], [C, A])]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        assert [row.name for row in rows] == ["Binh", "Dung", "Anna", "Chi"]

    def test_win_percentage_breaks_point_ties(self):
        # X: 1 win (4 pts, 100%); Y: 4 losses (4 pts, 0%)
        rows = sort_rows([
            RankingRow(id=1, name="Zed", points=4, win_percentage=100),
            RankingRow(id=2, name="Amy", points=4, win_percentage=0),
        ])

        assert [row.name for row in rows] == ["Zed", "Amy"]

    def test_player_id_breaks_name_ties(self):
        rows = sort_rows([
            RankingRow(id=9, name="Same", points=4),
            RankingRow(id=3, name="Same", points=4),
        ])

        assert [row.id for row in rows] == [3, 9]

    def test_deterministic_for_shuffled_input(self):
        matches = [
            FakeMatch(1, 1, DAY, 1, [A, B], [C, D]),
            FakeMatch(2, 1, DAY, 2, [A, C], [B, D]),
            FakeMatch(3, 1, date(2026, 3, 8), 1, [A, D], [B, C]),
        ]

        first = aggregate_rankings(matches, PLAYERS, flat_fee())
        second = aggregate_rankings(list(reversed(matches)), list(reversed(PLAYERS)), flat_fee())

        assert [row.to_dict() for row in first] == [row.to_dict() for row in second]


class TestForm:

    def test_form_is_oldest_first(self):
        matches = [
            FakeMatch(1, 1, date(2026, 3, 1), 1, [A, B], [C, D]),
            FakeMatch(2, 1, date(2026, 3, 2), 2, [A, B], [C, D]),
        ]

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee()))

        assert [entry.result for entry in rows["Anna"].form] == ["win", "loss"]
        assert rows["Anna"].form[0].play_date == "2026-03-01"

    def test_form_keeps_last_n(self):
        matches = [
            FakeMatch(i, 1, date(2026, 3, i), 1 if i % 2 else 2, [A, B], [C, D])
            for i in range(1, 8)
        ]

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee(), form_length=5))

        form = rows["Anna"].form
        assert len(form) == 5
        assert [entry.play_date for entry in form] == [f"2026-03-0{i}" for i in range(3, 8)]

    def test_same_day_ordered_by_created_at(self):
        matches = [
            FakeMatch(2, 1, DAY, 2, [A, B], [C, D], created_at=datetime(2026, 3, 7, 10)),
            FakeMatch(1, 1, DAY, 1, [A, B], [C, D], created_at=datetime(2026, 3, 7, 9)),
        ]

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee()))

        assert [entry.result for entry in rows["Anna"].form] == ["win", "loss"]


class TestConservation:

    def test_totals_match_participations(self):
        matches = [
            FakeMatch(1, 1, DAY, 1, [A, B], [C, D]),
            FakeMatch(2, 1, DAY, 2, [A, C], [B, E]),
            FakeMatch(3, 1, DAY, 1, [E], [D]),
            FakeMatch(4, 2, date(2026, 3, 9), 1, [B, D], [A, E]),
        ]

        rows = aggregate_rankings(matches, PLAYERS, flat_fee())

        winning = sum(len(m.team1_ids if m.winning_team == 1 else m.team2_ids) for m in matches)
        losing = sum(len(m.team2_ids if m.winning_team == 1 else m.team1_ids) for m in matches)
        total_wins = sum(row.wins for row in rows)
        total_losses = sum(row.losses for row in rows)

        assert total_wins == winning
        assert total_losses == losing
        assert sum(row.points for row in rows) == POINTS_PER_WIN * total_wins + POINTS_PER_LOSS * total_losses
        assert sum(row.money_lost for row in rows) == 20000 * total_losses

    def test_three_wins_one_loss_is_75_percent(self):
        matches = [FakeMatch(i, 1, date(2026, 3, i), 1, [A, B], [C, D]) for i in range(1, 4)]
        matches.append(FakeMatch(4, 1, date(2026, 3, 4), 2, [A, B], [C, D]))

        rows = by_name(aggregate_rankings(matches, PLAYERS, flat_fee()))

        assert rows["Anna"].win_percentage == 75
        assert rows["Anna"].points == 13
