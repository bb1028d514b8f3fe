"""
cache — Persistent store of Watchmode responses (the `api_cache` table).

Two read paths:
  lookup(key)                       -> only rows whose expires_at is in the future
  lookup(key, include_expired=True) -> any row, used as stale fallback on upstream failure

Writes are upserts keyed by `cache_key`; the caller only writes after a
successful live fetch, so a failed call never replaces a good row.
"""
from __future__ import annotations

import hashlib
import json
from datetime import timedelta
from typing import Any, Iterable
from urllib.parse import urlencode

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db.models import CacheEntry, utcnow

log = structlog.get_logger()

SECRET_PARAMS = frozenset({"apiKey", "api_key", "apikey"})


def request_path(api_url: str, endpoint: str, params: dict | None = None) -> str:
    """Credential-free request URL with parameters in sorted order."""
    clean = sorted(
        (k, v) for k, v in (params or {}).items() if k not in SECRET_PARAMS
    )
    base = api_url + endpoint.lstrip("/")
    return f"{base}?{urlencode(clean)}" if clean else base


def cache_key(api_url: str, endpoint: str, params: dict | None = None) -> str:
    """md5 fingerprint of the request's logical identity."""
    return hashlib.md5(request_path(api_url, endpoint, params).encode("utf-8")).hexdigest()


def redact(path: str) -> str:
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}apiKey=[REDACTED]"


class ApiCache:
    def __init__(self, session: Session, clock=utcnow):
        self.session = session
        self.clock = clock

    def lookup(self, key: str, include_expired: bool = False) -> CacheEntry | None:
        stmt = select(CacheEntry).where(CacheEntry.cache_key == key)
        if not include_expired:
            stmt = stmt.where(CacheEntry.expires_at > self.clock())
        return self.session.scalars(stmt).first()

    def get(self, key: str, include_expired: bool = False) -> tuple[bool, Any]:
        """Return (hit, payload). A hit may carry a JSON null payload."""
        entry = self.lookup(key, include_expired=include_expired)
        if entry is None:
            return False, None
        try:
            return True, json.loads(entry.payload)
        except ValueError:
            log.warning("cache_payload_corrupt", cache_key=key)
            return False, None

    def upsert(self, key: str, path: str, category: str, payload: Any, ttl: int) -> CacheEntry:
        now = self.clock()
        blob = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        expires = now + timedelta(seconds=ttl)

        entry = self.lookup(key, include_expired=True)
        if entry is None:
            entry = CacheEntry(
                cache_key=key,
                request_path=path,
                cache_type=category,
                payload=blob,
                first_seen_at=now,
                last_updated_at=now,
                expires_at=expires,
            )
            self.session.add(entry)
            try:
                self.session.commit()
            except IntegrityError:
                # another request inserted the key first; last write wins
                self.session.rollback()
                entry = self.lookup(key, include_expired=True)
                if entry is None:
                    raise
            else:
                log.debug("cache_inserted", cache_key=key, cache_type=category)
                return entry

        entry.request_path = path
        entry.cache_type = category
        entry.payload = blob
        entry.last_updated_at = now
        entry.expires_at = expires
        self.session.commit()
        log.debug("cache_updated", cache_key=key, cache_type=category)
        return entry

    def purge(self, category: str | None = None) -> int:
        stmt = delete(CacheEntry)
        if category:
            stmt = stmt.where(CacheEntry.cache_type == category)
        result = self.session.execute(stmt)
        self.session.commit()
        log.info("cache_purged", cache_type=category or "all", rows=result.rowcount)
        return result.rowcount

    def count(self, category: str | None = None) -> int:
        stmt = select(func.count(CacheEntry.id))
        if category:
            stmt = stmt.where(CacheEntry.cache_type == category)
        return self.session.scalar(stmt) or 0

    def counts_by_type(self) -> dict[str, int]:
        rows: Iterable = self.session.execute(
            select(CacheEntry.cache_type, func.count(CacheEntry.id)).group_by(CacheEntry.cache_type)
        )
        return {cache_type: n for cache_type, n in rows}
