"""
Database models for the tennis league.

Team 1 is player slots 1-2 and team 2 is slots 3-4. Solo matches use slots
1 and 3 only and leave 2 and 4 empty.
"""
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, DateTime, Date, ForeignKey, Boolean, Text, Index,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

MATCH_TYPE_DUO = "duo"
MATCH_TYPE_SOLO = "solo"


class Player(Base):
    """A league member. Names are unique."""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    season_entries = relationship("SeasonPlayer", back_populates="player", cascade="all, delete-orphan")


class Season(Base):
    """A league season; at most one is active at a time."""
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    auto_end = Column(Boolean, nullable=False, default=False)  # end automatically after end_date
    description = Column(Text, nullable=True)
    loss_fee = Column(Integer, nullable=True)  # overrides DEFAULT_LOSS_FEE when set
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    ended_at = Column(DateTime, nullable=True)
    ended_by = Column(String(100), nullable=True)

    matches = relationship("Match", back_populates="season", cascade="all, delete-orphan")
    roster = relationship("SeasonPlayer", back_populates="season", cascade="all, delete-orphan")


class SeasonPlayer(Base):
    """Explicit season roster entry. An empty roster admits every player."""
    __tablename__ = "season_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    added_by = Column(String(100), nullable=True)

    season = relationship("Season", back_populates="roster")
    player = relationship("Player", back_populates="season_entries")

    __table_args__ = (
        UniqueConstraint("season_id", "player_id", name="uq_season_players_season_player"),
    )


class Match(Base):
    """A played match with its final score."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    play_date = Column(Date, nullable=False, index=True)
    player1_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    player3_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player4_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    team1_score = Column(Integer, nullable=False)
    team2_score = Column(Integer, nullable=False)
    winning_team = Column(Integer, nullable=False)  # 1 or 2
    match_type = Column(String(10), nullable=False, default=MATCH_TYPE_DUO, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    season = relationship("Season", back_populates="matches")
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])
    player3 = relationship("Player", foreign_keys=[player3_id])
    player4 = relationship("Player", foreign_keys=[player4_id])

    __table_args__ = (
        CheckConstraint("winning_team IN (1, 2)", name="ck_matches_winning_team"),
        CheckConstraint("match_type IN ('solo', 'duo')", name="ck_matches_match_type"),
        Index("ix_matches_play_date_created", "play_date", "created_at"),
    )

    @property
    def team1_ids(self) -> list[int]:
        return [pid for pid in (self.player1_id, self.player2_id) if pid is not None]

    @property
    def team2_ids(self) -> list[int]:
        return [pid for pid in (self.player3_id, self.player4_id) if pid is not None]

    @property
    def player_ids(self) -> list[int]:
        return self.team1_ids + self.team2_ids
