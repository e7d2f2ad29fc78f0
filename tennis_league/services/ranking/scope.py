"""
Ranking scopes.

A scope selects which matches feed a ranking table: every match (lifetime),
one season, or one play date. The same scope also names its cache slot, so
the key is a pure function of (kind, selector):

    rankings:lifetime
    rankings:season:<id>
    rankings:date:<YYYY-MM-DD>

Clients address scopes either by view mode (`lifetime`, `season`, `daily`)
plus a selector, or by scope key (`lifetime`, `season/<id>`, `date/<day>`).
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Union

from tennis_league.core.errors import InvalidScopeError

CACHE_KEY_PREFIX = "rankings"


class ScopeKind(str, Enum):
    LIFETIME = "lifetime"
    SEASON = "season"
    DATE = "date"


# View modes offered by the client, mapped onto scope kinds
VIEW_MODES = {
    "lifetime": ScopeKind.LIFETIME,
    "season": ScopeKind.SEASON,
    "daily": ScopeKind.DATE,
    "date": ScopeKind.DATE,
}


@dataclass(frozen=True)
class RankingScope:
    """Immutable scope descriptor. Build with the classmethods, not directly."""

    kind: ScopeKind
    season_id: Optional[int] = None
    play_date: Optional[date] = None

    def __post_init__(self):
        if self.kind is ScopeKind.SEASON and self.season_id is None:
            raise InvalidScopeError("Season scope needs a season id")
        if self.kind is ScopeKind.DATE and self.play_date is None:
            raise InvalidScopeError("Date scope needs a play date")

    @classmethod
    def lifetime(cls) -> "RankingScope":
        return cls(ScopeKind.LIFETIME)

    @classmethod
    def for_season(cls, season_id: int) -> "RankingScope":
        return cls(ScopeKind.SEASON, season_id=int(season_id))

    @classmethod
    def for_date(cls, play_date: date) -> "RankingScope":
        return cls(ScopeKind.DATE, play_date=play_date)

    @property
    def selector(self) -> Optional[str]:
        if self.kind is ScopeKind.SEASON:
            return str(self.season_id)
        if self.kind is ScopeKind.DATE:
            return self.play_date.isoformat()
        return None

    @property
    def cache_key(self) -> str:
        if self.selector is None:
            return f"{CACHE_KEY_PREFIX}:{self.kind.value}"
        return f"{CACHE_KEY_PREFIX}:{self.kind.value}:{self.selector}"

    @property
    def scope_key(self) -> str:
        if self.selector is None:
            return self.kind.value
        return f"{self.kind.value}/{self.selector}"

    def __str__(self) -> str:
        return self.scope_key


def parse_season_id(value: Union[str, int]) -> int:
    """Parse a season selector; must be a positive integer."""
    try:
        season_id = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidScopeError(f"Invalid season id: {value!r}")
    if season_id <= 0:
        raise InvalidScopeError(f"Invalid season id: {value!r}")
    return season_id


def parse_play_date(value: Union[str, date]) -> date:
    """Parse an ISO-8601 calendar date (YYYY-MM-DD)."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidScopeError(f"Invalid play date: {value!r}. Use YYYY-MM-DD")


def resolve_scope(mode: str, selector: Optional[Union[str, int, date]] = None) -> RankingScope:
    """
    Map a client view mode plus selector onto a scope.

    Args:
        mode: "lifetime", "season" or "daily" (alias "date")
        selector: season id for "season", ISO date for "daily"; ignored for lifetime

    Raises:
        InvalidScopeError: unknown mode, or a missing/malformed selector
    """
    kind = VIEW_MODES.get((mode or "").strip().lower())
    if kind is None:
        raise InvalidScopeError(
            f"Unknown ranking view: {mode!r}",
            details={"allowed": sorted(VIEW_MODES)},
        )

    if kind is ScopeKind.LIFETIME:
        return RankingScope.lifetime()

    if selector is None or str(selector).strip() == "":
        raise InvalidScopeError(f"Ranking view {mode!r} needs a selector")

    if kind is ScopeKind.SEASON:
        return RankingScope.for_season(parse_season_id(selector))
    return RankingScope.for_date(parse_play_date(selector))


def parse_scope_key(key: str) -> RankingScope:
    """Parse `lifetime`, `season/<id>` or `date/<YYYY-MM-DD>`."""
    raw = (key or "").strip().strip("/")
    kind, _, selector = raw.partition("/")

    if kind == ScopeKind.LIFETIME.value and not selector:
        return RankingScope.lifetime()
    if kind == ScopeKind.SEASON.value and selector:
        return RankingScope.for_season(parse_season_id(selector))
    if kind == ScopeKind.DATE.value and selector:
        return RankingScope.for_date(parse_play_date(selector))

    raise InvalidScopeError(f"Invalid scope key: {key!r}")


def ttl_for(scope: RankingScope, app_settings) -> int:
    """Cache TTL in seconds for the scope's kind."""
    return app_settings.get_ranking_ttl(scope.kind.value)
