"""
payloads — Typed views over Watchmode JSON responses.

Each dataclass has a `from_payload` constructor that tolerates missing or
mistyped keys, so a partial upstream body degrades to defaults instead of
raising KeyError deep inside the sync code.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional


def _int(value: Any, default: int | None = 0) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_date(value: Any) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (or a longer ISO timestamp); anything else is None."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _items(payload: Any) -> list[dict]:
    if not isinstance(payload, list):
        return []
    return [p for p in payload if isinstance(p, dict)]


@dataclass
class SourceInfo:
    """Entry of the global `sources/` catalog."""
    source_id: int
    name: str
    type: str = ""
    logo_url: str = ""
    regions: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> Optional["SourceInfo"]:
        source_id = _int(data.get("id"), None)
        if not source_id:
            return None
        regions = data.get("regions")
        return cls(
            source_id=source_id,
            name=_str(data.get("name")) or f"Source {source_id}",
            type=_str(data.get("type")),
            logo_url=_str(data.get("logo_100px")) or _str(data.get("logo_url")),
            regions=[str(r) for r in regions] if isinstance(regions, list) else [],
        )


@dataclass
class SearchResult:
    title_id: int
    name: str
    type: str = ""
    year: Optional[int] = None

    @classmethod
    def from_payload(cls, data: dict) -> Optional["SearchResult"]:
        title_id = _int(data.get("id"), None)
        if not title_id:
            return None
        return cls(
            title_id=title_id,
            name=_str(data.get("name")),
            type=_str(data.get("type")),
            year=_int(data.get("year"), None),
        )


@dataclass
class TitleDetails:
    title_id: int
    title: str
    type: str = ""
    year: Optional[int] = None
    end_year: Optional[int] = None
    release_date: Optional[date] = None
    plot_overview: str = ""
    poster: str = ""
    genre_names: list[str] = field(default_factory=list)

    @property
    def is_movie(self) -> bool:
        return self.type in ("movie", "short_film", "tv_movie")

    @classmethod
    def from_payload(cls, data: Any) -> "TitleDetails":
        if not isinstance(data, dict):
            data = {}
        genres = data.get("genre_names")
        return cls(
            title_id=_int(data.get("id")) or 0,
            title=_str(data.get("title")),
            type=_str(data.get("type")),
            year=_int(data.get("year"), None),
            end_year=_int(data.get("end_year"), None),
            release_date=parse_date(data.get("release_date")),
            plot_overview=_str(data.get("plot_overview")),
            poster=_str(data.get("poster")),
            genre_names=[str(g) for g in genres] if isinstance(genres, list) else [],
        )


@dataclass
class SeasonInfo:
    season_id: int
    number: int
    name: str = ""
    air_date: Optional[date] = None
    episode_count: int = 0
    poster_url: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> Optional["SeasonInfo"]:
        season_id = _int(data.get("id"), None)
        if season_id is None:
            return None
        return cls(
            season_id=season_id,
            number=_int(data.get("number")) or 0,
            name=_str(data.get("name")),
            air_date=parse_date(data.get("air_date")),
            episode_count=_int(data.get("episode_count")) or 0,
            poster_url=_str(data.get("poster_url")),
        )


@dataclass
class SourceLinkPayload:
    """A streaming link, as nested in episodes or returned by `title/{id}/sources/`."""
    source_id: int
    region: str = ""
    web_url: str = ""
    name: str = ""
    type: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> Optional["SourceLinkPayload"]:
        source_id = _int(data.get("source_id"), None)
        if not source_id:
            return None
        return cls(
            source_id=source_id,
            region=_str(data.get("region")).upper(),
            web_url=_str(data.get("web_url")),
            name=_str(data.get("name")),
            type=_str(data.get("type")),
        )


@dataclass
class EpisodePayload:
    episode_id: int
    season_number: int = 0
    episode_number: int = 0
    name: str = ""
    air_date: Optional[date] = None
    overview: str = ""
    thumbnail_url: str = ""
    sources: list[SourceLinkPayload] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> Optional["EpisodePayload"]:
        episode_id = _int(data.get("id"), None)
        if not episode_id:
            return None
        return cls(
            episode_id=episode_id,
            season_number=_int(data.get("season_number")) or 0,
            episode_number=_int(data.get("episode_number")) or 0,
            name=_str(data.get("name")),
            air_date=parse_date(data.get("release_date")) or parse_date(data.get("air_date")),
            overview=_str(data.get("overview")),
            thumbnail_url=_str(data.get("thumbnail_url")),
            sources=parse_list(SourceLinkPayload, data.get("sources")),
        )


def parse_list(cls, payload: Any) -> list:
    """Build `cls` objects from a JSON array, dropping entries without an id."""
    out = []
    for item in _items(payload):
        obj = cls.from_payload(item)
        if obj is not None:
            out.append(obj)
    return out
