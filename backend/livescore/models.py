from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Boolean,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base


class Sport(Base):
    __tablename__ = "sport"
    id = Column(String, primary_key=True)   # e.g., "cricket", "volleyball"
    name = Column(String, nullable=False, unique=True)


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    sport_id = Column(String, ForeignKey("sport.id"), nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    home_name = Column(String, nullable=True)
    away_name = Column(String, nullable=True)
    winner_side = Column(String, nullable=True)  # "home" | "away" | "tie"
    result = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)


class MatchConfig(Base):
    """Pre-match configuration and toss, written before scoring starts."""

    __tablename__ = "match_config"
    match_id = Column(String, ForeignKey("match.id"), primary_key=True)
    sport_id = Column(String, ForeignKey("sport.id"), nullable=False)
    config = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    config_completed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class MatchScore(Base):
    """Latest full scoring snapshot. Last write wins."""

    __tablename__ = "match_score"
    match_id = Column(String, ForeignKey("match.id"), primary_key=True)
    state = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ScoreEvent(Base):
    __tablename__ = "score_event"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_score_event_match_id_created_at", "match_id", "created_at"),
    )
