"""
League models.

Usage:
    from tennis_league.models import Player, Season, Match
"""
from tennis_league.models.models import (
    Base,
    Player,
    Season,
    SeasonPlayer,
    Match,
    MATCH_TYPE_DUO,
    MATCH_TYPE_SOLO,
)

__all__ = [
    "Base",
    "Player",
    "Season",
    "SeasonPlayer",
    "Match",
    "MATCH_TYPE_DUO",
    "MATCH_TYPE_SOLO",
]
