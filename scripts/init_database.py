#!/usr/bin/env python3
"""
Initialize the league database.

Creates every table from the SQLAlchemy models and, optionally, a first
season and a list of players.

Usage:
    python scripts/init_database.py
    python scripts/init_database.py --season "Spring 2026" --start 2026-03-01 --players Anna Binh Chi Dung
"""
import argparse
import sys
from datetime import date
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv=None):
    """Create all tables, then seed what was asked for."""
    parser = argparse.ArgumentParser(description="Initialize the tennis league database")
    parser.add_argument("--season", help="Name of a first season to create")
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="Season start date (YYYY-MM-DD)")
    parser.add_argument("--players", nargs="*", default=[], help="Player names to add")
    args = parser.parse_args(argv)

    from tennis_league.core.config import settings
    from tennis_league.core.database import SessionLocal, init_db
    from tennis_league.core.errors import ConflictError
    from tennis_league.services.player_service import PlayerService
    from tennis_league.services.season_service import SeasonService

    logger.info("Creating database tables from SQLAlchemy models...")
    init_db()
    logger.info("All database tables created")

    db = SessionLocal()
    try:
        if args.season:
            season = SeasonService(db, default_loss_fee=settings.DEFAULT_LOSS_FEE).create_season(
                name=args.season,
                start_date=args.start or date.today(),
            )
            logger.info(f"Created season {season['id']} ({season['name']})")

        service = PlayerService(db)
        for name in args.players:
            try:
                player = service.add_player(name)
                logger.info(f"Added player {player['id']} ({player['name']})")
            except ConflictError:
                logger.info(f"Player {name} already exists, skipping")
    finally:
        db.close()


if __name__ == "__main__":
    main()
