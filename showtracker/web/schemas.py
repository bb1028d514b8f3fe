"""
schemas — Pydantic request/response models for the API.
"""
from __future__ import annotations
from datetime import date, datetime
from pydantic import BaseModel, Field


# --- System ---

class HealthResponse(BaseModel):
    status: str
    api_key_configured: bool


class StatsResponse(BaseModel):
    shows: int
    movies: int
    episodes: int
    watched_episodes: int
    sources: int
    cache_entries: int
    cache_by_type: dict[str, int]


class PurgeResponse(BaseModel):
    deleted: int
    category: str | None


class CountResponse(BaseModel):
    count: int


# --- Catalog ---

class SearchResultResponse(BaseModel):
    title_id: int
    name: str
    type: str
    year: int | None
    is_tracked: bool = False


class TitleDetailsResponse(BaseModel):
    title_id: int
    title: str
    type: str
    year: int | None
    end_year: int | None
    release_date: date | None
    plot_overview: str
    poster: str
    genre_names: list[str]
    is_tracked: bool = False


class SeasonResponse(BaseModel):
    season_id: int
    number: int
    name: str
    air_date: date | None
    episode_count: int


class EpisodeResponse(BaseModel):
    title_id: int
    episode_id: int
    season_number: int
    episode_number: int
    episode_name: str
    air_date: date | None
    overview: str | None
    thumbnail_url: str | None
    watched: bool = False

    class Config:
        from_attributes = True


class EpisodeSourceResponse(BaseModel):
    source_id: int
    source_name: str
    logo_url: str | None
    region: str
    web_url: str


class ResyncResponse(BaseModel):
    title_id: int
    end_year: int | None
    episodes: int


# --- Tracker ---

class TrackRequest(BaseModel):
    title_id: int
    title_name: str
    total_episodes: int = 0
    total_seasons: int = 0
    item_type: str = "tv"
    release_date: date | None = None
    is_watched: bool = False


class TrackResponse(BaseModel):
    id: int | None = None
    title_id: int
    action: str
    message: str


class WatchToggleRequest(BaseModel):
    watched: bool


class BulkToggleRequest(BaseModel):
    watched: bool
    season: int | None = Field(None, ge=0)


class ShowResponse(BaseModel):
    title_id: int
    title_name: str
    total_episodes: int
    total_seasons: int
    watched_count: int
    unwatched_count: int
    end_year: int | None
    release_date: date | None
    tracked_at: datetime


class MovieResponse(BaseModel):
    title_id: int
    title_name: str
    release_date: date | None
    is_watched: int
    tracked_at: datetime


class WatchedIdsResponse(BaseModel):
    title_id: int
    episode_ids: list[int]
    count: int


class UnwatchedEpisodeResponse(BaseModel):
    title_id: int
    title_name: str
    episode_id: int
    season_number: int
    episode_number: int
    episode_name: str
    air_date: date | None
    overview: str | None
    thumbnail_url: str | None


class UpcomingDayResponse(BaseModel):
    air_date: date
    episodes: list[UnwatchedEpisodeResponse]
