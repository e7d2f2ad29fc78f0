"""Shared pytest fixtures for tennis league API tests."""
import os
import sys
from pathlib import Path
from datetime import date, datetime
from typing import Generator

# Test settings must be in place before tennis_league.core.config is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("API_KEY", "")
os.environ.setdefault("ADMIN_TOKEN", "")

import pytest
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


class FakeClock:
    """Manually advanced monotonic clock for cache TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def engine():
    """
    Isolated in-memory database.

    StaticPool keeps one connection so every session, including the one the
    cache warm-up opens from a worker thread, sees the same data.
    """
    from tennis_league.core.database import build_engine
    from tennis_league.models import Base

    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ranking_cache(clock):
    from tennis_league.services.ranking.cache import RankingCache

    return RankingCache(default_ttl=300, clock=clock)


@pytest.fixture
def cache_warmer(ranking_cache, session_factory):
    """Warmer with background warm-up switched off, so reads after a write miss."""
    from tennis_league.services.ranking.warmup import CacheWarmer

    return CacheWarmer(ranking_cache, session_factory, delay_seconds=0, enabled=False)


@pytest.fixture(scope="function")
def test_client(db_session, ranking_cache, cache_warmer):
    """
    Create FastAPI TestClient with a fresh database for each test.

    Note: We don't use context manager (with TestClient) so the lifespan
    (scheduler, real database, warm-up) never runs; the cache and warmer come
    from fixtures through dependency overrides.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/v1/players")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from tennis_league.main import app
    from tennis_league.core.database import get_db
    from tennis_league.api.dependencies import get_cache_warmer, get_ranking_cache

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ranking_cache] = lambda: ranking_cache
    app.dependency_overrides[get_cache_warmer] = lambda: cache_warmer

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA
# =============================================================================

@pytest.fixture
def players(db_session):
    """Four players: Anna, Binh, Chi, Dung (ids in that order)."""
    from tennis_league.models import Player

    created = [Player(name=name) for name in ("Anna", "Binh", "Chi", "Dung")]
    db_session.add_all(created)
    db_session.commit()
    return created


@pytest.fixture
def season(db_session):
    """Active season using the default loss fee."""
    from tennis_league.models import Season

    s = Season(name="Spring 2026", start_date=date(2026, 3, 1), is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def add_match(db_session):
    """Factory inserting a match directly through the ORM."""
    from tennis_league.models import Match, MATCH_TYPE_DUO, MATCH_TYPE_SOLO

    counter = {"n": 0}

    def _add(season_id, play_date, team1, team2, winning_team, score=(6, 2)):
        counter["n"] += 1
        solo = len(team1) == 1
        match = Match(
            season_id=season_id,
            play_date=play_date,
            player1_id=team1[0],
            player2_id=None if solo else team1[1],
            player3_id=team2[0],
            player4_id=None if solo else team2[1],
            team1_score=score[0],
            team2_score=score[1],
            winning_team=winning_team,
            match_type=MATCH_TYPE_SOLO if solo else MATCH_TYPE_DUO,
            created_at=datetime(2026, 1, 1, 8, 0, counter["n"]),
        )
        db_session.add(match)
        db_session.commit()
        return match

    return _add
