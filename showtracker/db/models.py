from __future__ import annotations
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String, Integer, BigInteger, Date, DateTime, Text, Boolean, JSON,
    UniqueConstraint, Index, Enum as SAEnum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column here stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class ItemType(str, Enum):
    TV = "tv"
    MOVIE = "movie"


class CacheEntry(Base):
    """
    One cached Watchmode response, keyed by the md5 of its credential-free request path.
    Rows are overwritten by successful fetches and only removed by an explicit purge.
    """
    __tablename__ = "api_cache"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cache_key: Mapped[str] = mapped_column(String(32), unique=True)
    request_path: Mapped[str] = mapped_column(String(2000))
    cache_type: Mapped[str] = mapped_column(String(40), index=True)
    payload: Mapped[str] = mapped_column(Text)  # JSON text
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)


class TrackedItem(Base):
    __tablename__ = "tracked_items"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, index=True)
    title_id: Mapped[int] = mapped_column(Integer, index=True)
    title_name: Mapped[str] = mapped_column(String(255))
    total_episodes: Mapped[int] = mapped_column(Integer, default=0)
    total_seasons: Mapped[int] = mapped_column(Integer, default=0)
    item_type: Mapped[ItemType] = mapped_column(SAEnum(ItemType), default=ItemType.TV, index=True)
    release_date: Mapped[Optional[date]] = mapped_column(Date)
    is_watched: Mapped[bool] = mapped_column(Boolean, default=False)  # movies only
    end_year: Mapped[Optional[int]] = mapped_column(Integer)
    tracked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (UniqueConstraint("user_id", "title_id", name="uq_tracked_user_title"),)


class EpisodeRecord(Base):
    """Local mirror of a Watchmode episode; shared by every user tracking the title."""
    __tablename__ = "episodes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title_id: Mapped[int] = mapped_column(Integer, index=True)
    episode_id: Mapped[int] = mapped_column(Integer)
    season_number: Mapped[int] = mapped_column(Integer, default=0)
    episode_number: Mapped[int] = mapped_column(Integer, default=0)
    episode_name: Mapped[str] = mapped_column(String(500), default="")
    air_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    overview: Mapped[Optional[str]] = mapped_column(Text)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1000))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    __table_args__ = (
        UniqueConstraint("title_id", "episode_id", name="uq_episode_title_ext"),
        Index("ix_episode_title_season", "title_id", "season_number"),
    )


class SourceLink(Base):
    __tablename__ = "episode_sources"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title_id: Mapped[int] = mapped_column(Integer)
    episode_id: Mapped[int] = mapped_column(Integer)
    source_id: Mapped[int] = mapped_column(Integer, index=True)
    region: Mapped[str] = mapped_column(String(8), default="")
    web_url: Mapped[str] = mapped_column(String(2000), default="")
    __table_args__ = (Index("ix_source_title_episode", "title_id", "episode_id"),)


class WatchState(Base):
    """Presence of a row means the user watched the episode."""
    __tablename__ = "watched_episodes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, index=True)
    title_id: Mapped[int] = mapped_column(Integer, index=True)
    episode_id: Mapped[int] = mapped_column(Integer)
    watched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    __table_args__ = (
        UniqueConstraint("user_id", "title_id", "episode_id", name="uq_watch_user_title_episode"),
    )


class Source(Base):
    __tablename__ = "sources"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    source_id: Mapped[int] = mapped_column(Integer, unique=True)
    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[Optional[str]] = mapped_column(String(40))
    logo_url: Mapped[Optional[str]] = mapped_column(String(1000))
    regions: Mapped[list[str] | None] = mapped_column(JSON)
