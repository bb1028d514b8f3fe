"""
store — Tracked items, per-user watch state and the local episode/source mirror.

The mirror tables (episodes, episode_sources, sources) are shared by all users
and rebuilt from catalog responses by `resync`. Tracking rows and watch state
are per user; watch state is presence-based (a row means watched).
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Optional

import structlog
from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .cache import ApiCache
from .catalog_client import CatalogClient
from .errors import CatalogError, InvalidParameters, MissingCredential, NotTracked
from .db.models import (
    EpisodeRecord, ItemType, Source, SourceLink, TrackedItem, WatchState, CacheEntry,
)
from .payloads import EpisodePayload, parse_date

log = structlog.get_logger()


def _require_id(name: str, value) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidParameters(f"Invalid {name}: {value!r}") from None
    if value <= 0:
        raise InvalidParameters(f"Invalid {name}: {value!r}")
    return value


class SyncStore:
    def __init__(self, session: Session, client: CatalogClient, today=date.today):
        self.session = session
        self.client = client
        self._today = today

    # -- tracking ---------------------------------------------------------

    def _tracked(self, user_id: int, title_id: int) -> TrackedItem | None:
        return self.session.scalars(
            select(TrackedItem).where(
                TrackedItem.user_id == user_id, TrackedItem.title_id == title_id
            )
        ).first()

    def is_tracked(self, user_id: int, title_id: int) -> bool:
        return self._tracked(user_id, title_id) is not None

    def add_tracked(
        self,
        user_id: int,
        title_id: int,
        title_name: str,
        total_episodes: int = 0,
        item_type: str | ItemType = ItemType.TV,
        release_date: str | date | None = None,
        is_watched: bool = False,
        total_seasons: int = 0,
    ) -> int:
        """Start tracking a title. Returns the row id (existing id if already tracked)."""
        user_id = _require_id("user id", user_id)
        title_id = _require_id("title id", title_id)
        title_name = (title_name or "").strip()
        if not title_name:
            raise InvalidParameters("Title name is required.")
        try:
            kind = ItemType(item_type)
        except ValueError:
            raise InvalidParameters(f"Unknown item type: {item_type!r}")
        released = parse_date(release_date) if release_date else None
        if release_date and released is None:
            raise InvalidParameters(f"Invalid release date: {release_date!r}")

        existing = self._tracked(user_id, title_id)
        if existing:
            return existing.id

        item = TrackedItem(
            user_id=user_id,
            title_id=title_id,
            title_name=title_name[:255],
            total_episodes=max(int(total_episodes or 0), 0),
            total_seasons=max(int(total_seasons or 0), 0),
            item_type=kind,
            release_date=released,
            is_watched=bool(is_watched) and kind == ItemType.MOVIE,
        )
        self.session.add(item)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self._tracked(user_id, title_id)
            if existing is None:
                raise
            return existing.id
        log.info("tracked_added", user_id=user_id, title_id=title_id, item_type=kind.value)
        return item.id

    def remove_tracked(self, user_id: int, title_id: int) -> bool:
        """Stop tracking a title; the user's watch rows for it go too."""
        self.session.execute(
            delete(WatchState).where(
                WatchState.user_id == user_id, WatchState.title_id == title_id
            )
        )
        result = self.session.execute(
            delete(TrackedItem).where(
                TrackedItem.user_id == user_id, TrackedItem.title_id == title_id
            )
        )
        self.session.commit()
        log.info("tracked_removed", user_id=user_id, title_id=title_id, removed=result.rowcount)
        return result.rowcount > 0

    # -- resync -----------------------------------------------------------

    def resync(self, title_id: int, force: bool = False) -> Optional[int]:
        """
        Refresh the local mirror for a title. Returns the series end year, or
        None when it is still running or the details call failed.
        """
        title_id = _require_id("title id", title_id)

        end_year = None
        try:
            details = self.client.get_title_details(title_id)
        except MissingCredential:
            raise
        except CatalogError as e:
            log.warning("resync_details_failed", title_id=title_id, error=e.message)
        else:
            end_year = details.end_year
            self.session.execute(
                update(TrackedItem)
                .where(TrackedItem.title_id == title_id)
                .values(end_year=end_year)
            )
            self.session.commit()

        if not force and self.has_episodes(title_id):
            return end_year

        episodes = self.client.get_episodes(title_id)
        if not episodes:
            log.info("resync_no_episodes", title_id=title_id)
            return end_year

        synced = failed = 0
        for ep in episodes:
            try:
                self._replace_episode(title_id, ep)
                self.session.commit()
                synced += 1
            except SQLAlchemyError as e:
                self.session.rollback()
                failed += 1
                log.warning("resync_episode_failed", title_id=title_id,
                            episode_id=ep.episode_id, error=str(e))

        self.seed_sources()
        log.info("resync_done", title_id=title_id, synced=synced, failed=failed, force=force)
        return end_year

    def _replace_episode(self, title_id: int, ep: EpisodePayload) -> None:
        row = self.session.scalars(
            select(EpisodeRecord).where(
                EpisodeRecord.title_id == title_id,
                EpisodeRecord.episode_id == ep.episode_id,
            )
        ).first()
        if row is None:
            row = EpisodeRecord(title_id=title_id, episode_id=ep.episode_id)
            self.session.add(row)
        row.season_number = ep.season_number
        row.episode_number = ep.episode_number
        row.episode_name = ep.name[:500]
        row.air_date = ep.air_date
        row.overview = ep.overview or None
        row.thumbnail_url = ep.thumbnail_url or None

        self.session.execute(
            delete(SourceLink).where(
                SourceLink.title_id == title_id, SourceLink.episode_id == ep.episode_id
            )
        )
        for link in ep.sources:
            self.session.add(SourceLink(
                title_id=title_id,
                episode_id=ep.episode_id,
                source_id=link.source_id,
                region=link.region,
                web_url=link.web_url,
            ))

    def has_episodes(self, title_id: int) -> bool:
        n = self.session.scalar(
            select(func.count(EpisodeRecord.id)).where(EpisodeRecord.title_id == title_id)
        )
        return bool(n)

    def seed_sources(self) -> int:
        """Fill the source catalog once; no-op when it already has rows."""
        if self.session.scalar(select(func.count(Source.id))):
            return 0
        return self._load_sources()

    def refresh_sources(self) -> int:
        """Admin action: rebuild the source catalog from the API."""
        infos = self.client.get_all_sources()
        if not infos:
            log.warning("sources_refresh_empty")
            return 0
        self.session.execute(delete(Source))
        return self._store_sources(infos)

    def _load_sources(self) -> int:
        try:
            infos = self.client.get_all_sources()
        except MissingCredential:
            return 0
        return self._store_sources(infos)

    def _store_sources(self, infos) -> int:
        seen = set()
        for info in infos:
            if info.source_id in seen:
                continue
            seen.add(info.source_id)
            self.session.add(Source(
                source_id=info.source_id,
                name=info.name[:200],
                type=info.type or None,
                logo_url=info.logo_url or None,
                regions=info.regions,
            ))
        self.session.commit()
        log.info("sources_stored", count=len(seen))
        return len(seen)

    # -- watch state ------------------------------------------------------

    def _require_tracked(self, user_id: int, title_id: int) -> TrackedItem:
        item = self._tracked(user_id, title_id)
        if item is None:
            raise NotTracked(user_id, title_id)
        return item

    def toggle_episode_watch(self, user_id: int, title_id: int, episode_id: int, watched: bool) -> bool:
        episode_id = _require_id("episode id", episode_id)
        self._require_tracked(user_id, title_id)
        if watched:
            self._insert_watched(user_id, title_id, [episode_id])
        else:
            self._delete_watched(user_id, title_id, [episode_id])
        self.session.commit()
        log.info("episode_toggled", user_id=user_id, title_id=title_id,
                 episode_id=episode_id, watched=watched)
        return True

    def toggle_bulk(self, user_id: int, title_id: int, watched: bool, season: int | None = None) -> int:
        """
        Mark every aired episode (optionally one season) watched or unwatched.
        Episodes with no air date or an air date after today are left alone.
        Returns the number of episodes in the target set.
        """
        self._require_tracked(user_id, title_id)
        stmt = select(EpisodeRecord.episode_id).where(
            EpisodeRecord.title_id == title_id,
            EpisodeRecord.air_date.is_not(None),
            EpisodeRecord.air_date <= self._today(),
        )
        if season is not None:
            stmt = stmt.where(EpisodeRecord.season_number == int(season))
        targets = list(self.session.scalars(stmt))
        if not targets:
            return 0

        if watched:
            self._insert_watched(user_id, title_id, targets)
        else:
            self._delete_watched(user_id, title_id, targets)
        self.session.commit()
        log.info("episodes_bulk_toggled", user_id=user_id, title_id=title_id,
                 season=season, watched=watched, count=len(targets))
        return len(targets)

    def _insert_watched(self, user_id: int, title_id: int, episode_ids: list[int]) -> None:
        have = set(self.session.scalars(
            select(WatchState.episode_id).where(
                WatchState.user_id == user_id,
                WatchState.title_id == title_id,
                WatchState.episode_id.in_(episode_ids),
            )
        ))
        for episode_id in dict.fromkeys(episode_ids):
            if episode_id not in have:
                self.session.add(WatchState(user_id=user_id, title_id=title_id, episode_id=episode_id))

    def _delete_watched(self, user_id: int, title_id: int, episode_ids: list[int]) -> None:
        self.session.execute(
            delete(WatchState).where(
                WatchState.user_id == user_id,
                WatchState.title_id == title_id,
                WatchState.episode_id.in_(episode_ids),
            )
        )

    def toggle_movie_watched(self, user_id: int, title_id: int, watched: bool) -> bool:
        item = self._require_tracked(user_id, title_id)
        if item.item_type != ItemType.MOVIE:
            raise InvalidParameters("Only movies carry a watched flag; toggle episodes instead.")
        item.is_watched = bool(watched)
        self.session.commit()
        log.info("movie_toggled", user_id=user_id, title_id=title_id, watched=watched)
        return True

    # -- read side --------------------------------------------------------

    def get_tracked_shows(self, user_id: int) -> list[dict]:
        watched_counts = dict(self.session.execute(
            select(WatchState.title_id, func.count(WatchState.id))
            .where(WatchState.user_id == user_id)
            .group_by(WatchState.title_id)
        ).all())
        items = self.session.scalars(
            select(TrackedItem)
            .where(TrackedItem.user_id == user_id, TrackedItem.item_type == ItemType.TV)
            .order_by(TrackedItem.title_name)
        )
        shows = []
        for item in items:
            watched = watched_counts.get(item.title_id, 0)
            shows.append({
                "title_id": item.title_id,
                "title_name": item.title_name,
                "total_episodes": item.total_episodes,
                "total_seasons": item.total_seasons,
                "watched_count": watched,
                "unwatched_count": max(item.total_episodes - watched, 0),
                "end_year": item.end_year,
                "release_date": item.release_date,
                "tracked_at": item.tracked_at,
            })
        return shows

    def get_tracked_movies(self, user_id: int) -> list[dict]:
        items = self.session.scalars(
            select(TrackedItem)
            .where(TrackedItem.user_id == user_id, TrackedItem.item_type == ItemType.MOVIE)
            .order_by(TrackedItem.release_date.desc(), TrackedItem.title_name)
        )
        return [
            {
                "title_id": m.title_id,
                "title_name": m.title_name,
                "release_date": m.release_date,
                "is_watched": 1 if m.is_watched else 0,
                "tracked_at": m.tracked_at,
            }
            for m in items
        ]

    def get_watched_episode_ids(self, user_id: int, title_id: int) -> list[int]:
        return list(self.session.scalars(
            select(WatchState.episode_id)
            .where(WatchState.user_id == user_id, WatchState.title_id == title_id)
            .order_by(WatchState.episode_id)
        ))

    def get_watched_count(self, user_id: int, title_id: int) -> int:
        return self.session.scalar(
            select(func.count(WatchState.id)).where(
                WatchState.user_id == user_id, WatchState.title_id == title_id
            )
        ) or 0

    def get_episodes(self, title_id: int, season: int | None = None) -> list[EpisodeRecord]:
        stmt = select(EpisodeRecord).where(EpisodeRecord.title_id == title_id)
        if season is not None:
            stmt = stmt.where(EpisodeRecord.season_number == season)
        stmt = stmt.order_by(EpisodeRecord.season_number, EpisodeRecord.episode_number)
        return list(self.session.scalars(stmt))

    def get_episode_sources(self, title_id: int, episode_id: int) -> list[dict]:
        """Streaming links for one episode, joined with source names and filtered by config."""
        cfg = self.client.config
        stmt = (
            select(SourceLink, Source)
            .outerjoin(Source, Source.source_id == SourceLink.source_id)
            .where(SourceLink.title_id == title_id, SourceLink.episode_id == episode_id)
            .order_by(SourceLink.source_id, SourceLink.region)
        )
        if cfg.enabled_sources:
            stmt = stmt.where(SourceLink.source_id.in_(cfg.enabled_sources))
        if cfg.enabled_regions:
            stmt = stmt.where(SourceLink.region.in_(cfg.enabled_regions))
        return [
            {
                "source_id": link.source_id,
                "source_name": src.name if src else f"Source {link.source_id}",
                "logo_url": src.logo_url if src else None,
                "region": link.region,
                "web_url": link.web_url,
            }
            for link, src in self.session.execute(stmt)
        ]

    def get_title_sources(self, title_id: int) -> list[dict]:
        """Title-level streaming links (movies, whole series), filtered by config."""
        title_id = _require_id("title id", title_id)
        links = self.client.filter_sources(self.client.get_sources_for_title(title_id))
        if not links:
            return []
        self.seed_sources()
        known = {
            s.source_id: s for s in self.session.scalars(
                select(Source).where(Source.source_id.in_({link.source_id for link in links}))
            )
        }
        rows = []
        for link in links:
            src = known.get(link.source_id)
            rows.append({
                "source_id": link.source_id,
                "source_name": src.name if src else (link.name or f"Source {link.source_id}"),
                "logo_url": src.logo_url if src else None,
                "region": link.region,
                "web_url": link.web_url,
            })
        return rows

    def _unwatched_query(self, user_id: int):
        watched = and_(
            WatchState.user_id == user_id,
            WatchState.title_id == EpisodeRecord.title_id,
            WatchState.episode_id == EpisodeRecord.episode_id,
        )
        return (
            select(EpisodeRecord, TrackedItem.title_name)
            .join(TrackedItem, and_(
                TrackedItem.title_id == EpisodeRecord.title_id,
                TrackedItem.user_id == user_id,
            ))
            .outerjoin(WatchState, watched)
            .where(WatchState.id.is_(None), EpisodeRecord.air_date.is_not(None))
        )

    @staticmethod
    def _episode_row(ep: EpisodeRecord, title_name: str) -> dict:
        return {
            "title_id": ep.title_id,
            "title_name": title_name,
            "episode_id": ep.episode_id,
            "season_number": ep.season_number,
            "episode_number": ep.episode_number,
            "episode_name": ep.episode_name,
            "air_date": ep.air_date,
            "overview": ep.overview,
            "thumbnail_url": ep.thumbnail_url,
        }

    def get_unwatched_episodes(self, user_id: int, until: date | None = None) -> list[dict]:
        """Aired episodes of the user's shows not yet watched, oldest first."""
        until = until or self._today()
        stmt = (
            self._unwatched_query(user_id)
            .where(EpisodeRecord.air_date <= until)
            .order_by(EpisodeRecord.air_date, EpisodeRecord.title_id,
                      EpisodeRecord.season_number, EpisodeRecord.episode_number)
        )
        return [self._episode_row(ep, name) for ep, name in self.session.execute(stmt)]

    def get_upcoming_episodes(self, user_id: int, today: date | None = None) -> "OrderedDict[date, list[dict]]":
        """Unwatched episodes airing today or later, grouped by air date."""
        today = today or self._today()
        stmt = (
            self._unwatched_query(user_id)
            .where(EpisodeRecord.air_date >= today)
            .order_by(EpisodeRecord.air_date, EpisodeRecord.title_id, EpisodeRecord.episode_number)
        )
        by_date: "OrderedDict[date, list[dict]]" = OrderedDict()
        for ep, name in self.session.execute(stmt):
            by_date.setdefault(ep.air_date, []).append(self._episode_row(ep, name))
        return by_date

    def get_stats(self) -> dict:
        """Aggregate counts for the admin dashboard."""
        def count(model, *where):
            return self.session.scalar(select(func.count(model.id)).where(*where)) or 0

        return {
            "shows": count(TrackedItem, TrackedItem.item_type == ItemType.TV),
            "movies": count(TrackedItem, TrackedItem.item_type == ItemType.MOVIE),
            "episodes": count(EpisodeRecord),
            "watched_episodes": count(WatchState),
            "sources": count(Source),
            "cache_entries": count(CacheEntry),
        }

    def purge_cache(self, category: str | None = None) -> int:
        return ApiCache(self.session).purge(category)
