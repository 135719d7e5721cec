#!/usr/bin/env python3
"""
Database models and configuration for GameDB.
Handles SQL persistence for games, reviews and favourites.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint, create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger('gamedb.database')

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class Game(Base):
    """Game metadata plus the cached rating aggregate."""
    __tablename__ = "games"

    id = Column(String(100), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, default='')
    release_date = Column(String(20), default='')  # ISO date, '' when unknown
    platform = Column(String(255), default='')
    genre = Column(String(255), default='')
    image = Column(String(1000), default='')  # reference only, never the bytes
    upcoming = Column(Boolean, default=False)
    released = Column(Boolean, default=False)
    average_rating = Column(Float, default=0.0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    # Relationships
    reviews = relationship("Review", back_populates="game", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="game", cascade="all, delete-orphan")


class Review(Base):
    """A user's review of a game; ``id`` doubles as the posting sequence."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), index=True, nullable=False)
    game_id = Column(String(100), ForeignKey("games.id", ondelete="CASCADE"), index=True, nullable=False)
    text = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5
    date_time_posted = Column(String(40), index=True, nullable=False)  # UTC ISO-8601

    # Relationships
    game = relationship("Game", back_populates="reviews")


class Favorite(Base):
    """A game a user marked as favourite."""
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint('user_id', 'game_id', name='uq_favorite_user_game'),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(255), index=True, nullable=False)
    game_id = Column(String(100), ForeignKey("games.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    # Relationships
    game = relationship("Game", back_populates="favorites")


def game_to_dict(game: Game) -> dict:
    return {
        'game_id': game.id,
        'title': game.title,
        'description': game.description or '',
        'release_date': game.release_date or '',
        'platform': game.platform or '',
        'genre': game.genre or '',
        'image': game.image or '',
        'upcoming': bool(game.upcoming),
        'released': bool(game.released),
        'average_rating': float(game.average_rating or 0),
        'total_ratings': int(game.total_ratings or 0),
    }


def review_to_dict(review: Review) -> dict:
    return {
        'review_id': str(review.id),
        'user_id': review.user_id,
        'game_id': review.game_id,
        'text': review.text,
        'rating': review.rating,
        'date_time_posted': review.date_time_posted,
        'sequence': review.id,
    }


def make_engine(database_url: str, echo: bool = False):
    """Create an engine for *database_url*.

    In-memory SQLite URLs get a ``StaticPool`` so every session shares the
    same connection (and therefore the same database).
    """
    kwargs = {'echo': echo}
    if database_url.startswith('sqlite'):
        kwargs['connect_args'] = {'check_same_thread': False}
        if database_url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
    else:
        kwargs['pool_pre_ping'] = True
    return create_engine(database_url, **kwargs)


def create_session_factory(engine) -> sessionmaker:
    """Return a session factory bound to *engine*."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine) -> None:
    """Create all tables on *engine* (no-op for tables that already exist)."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized successfully")
