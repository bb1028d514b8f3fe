"""
catalog_client — Watchmode API client with a persistent response cache.

Every request is fingerprinted by endpoint + non-secret params. Cacheable
requests are answered from a fresh cache row when one exists; otherwise the
live call is made and, if it fails for any reason, an expired row for the same
key is served instead. Only successful live responses are written back.

Configure via config.yaml `api_key` or the WATCHMODE_API_KEY env var.
"""
from __future__ import annotations

from typing import Any, Iterable

import requests
import structlog

from .cache import ApiCache, cache_key, redact, request_path
from .config import Config
from .errors import (
    ApiError, CatalogError, DecodeError, MissingCredential, UpstreamError,
)
from .payloads import (
    EpisodePayload, SearchResult, SeasonInfo, SourceInfo, SourceLinkPayload,
    TitleDetails, parse_list,
)
from .ratelimit import RateLimiter

log = structlog.get_logger()


class RequestLog:
    """Collects the (redacted) URLs one request/command caused the client to build."""

    def __init__(self):
        self._urls: list[str] = []

    def record(self, url: str) -> None:
        self._urls.append(url)

    @property
    def urls(self) -> list[str]:
        return list(self._urls)

    def __len__(self) -> int:
        return len(self._urls)


class CatalogClient:
    def __init__(
        self,
        config: Config,
        cache: ApiCache | None = None,
        http: requests.Session | None = None,
        request_log: RequestLog | None = None,
        limiter: RateLimiter | None = None,
    ):
        self.config = config
        self.cache = cache
        self.http = http or requests.Session()
        self.request_log = request_log if request_log is not None else RequestLog()
        self.limiter = limiter or RateLimiter(rate=config.rate_limit_rps)

    # -- core -------------------------------------------------------------

    def fetch(
        self,
        endpoint: str,
        params: dict | None = None,
        cacheable: bool = False,
        category: str = "default",
        ttl: int | None = None,
    ) -> Any:
        """
        Return the decoded JSON for `endpoint`, raising a CatalogError subclass
        when neither the live API nor the cache can answer.
        """
        if not self.config.api_key:
            raise MissingCredential()

        params = dict(params or {})
        key = cache_key(self.config.api_url, endpoint, params)
        path = request_path(self.config.api_url, endpoint, params)
        self.request_log.record(redact(path))
        use_cache = cacheable and self.cache is not None

        if use_cache:
            hit, payload = self.cache.get(key)
            if hit:
                log.debug("catalog_cache_hit", endpoint=endpoint, cache_type=category)
                return payload

        try:
            payload = self._live(endpoint, params)
        except CatalogError as e:
            log.warning("catalog_live_failed", endpoint=endpoint, error=e.message, code=e.code)
            if use_cache:
                hit, stale = self.cache.get(key, include_expired=True)
                if hit:
                    log.info("catalog_stale_fallback", endpoint=endpoint, cache_type=category)
                    return stale
            raise

        if use_cache:
            if ttl is None:
                ttl = self.config.ttl_for(category)
            self.cache.upsert(key, path, category, payload, ttl)
        return payload

    def _live(self, endpoint: str, params: dict) -> Any:
        url = self.config.api_url + endpoint.lstrip("/")
        query = dict(params, apiKey=self.config.api_key)
        self.limiter.wait()
        try:
            r = self.http.get(
                url,
                params=query,
                headers={"Accept": "application/json"},
                timeout=self.config.http_timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Request to Watchmode failed: {e.__class__.__name__}") from e

        try:
            data = r.json()
        except ValueError as e:
            if r.status_code >= 400:
                raise UpstreamError(f"Watchmode returned HTTP {r.status_code}") from e
            raise DecodeError() from e

        if isinstance(data, dict):
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    raise ApiError(err.get("code", r.status_code), err.get("message", ""))
                raise ApiError(data.get("code", r.status_code), data.get("message", err))
            if data.get("success") is False:
                raise ApiError(data.get("statusCode", r.status_code), data.get("statusMessage", ""))
        if r.status_code >= 400:
            raise UpstreamError(f"Watchmode returned HTTP {r.status_code}")

        log.debug("catalog_live_ok", endpoint=endpoint, status=r.status_code)
        return data

    def _fetch_list(self, endpoint: str, category: str, params: dict | None = None) -> Any:
        """List-shaped endpoints degrade to an empty result, except for a missing key."""
        try:
            return self.fetch(endpoint, params, cacheable=True, category=category)
        except MissingCredential:
            raise
        except CatalogError as e:
            log.warning("catalog_list_unavailable", endpoint=endpoint, error=e.message)
            return None

    # -- endpoint wrappers ------------------------------------------------

    def get_all_sources(self) -> list[SourceInfo]:
        return parse_list(SourceInfo, self._fetch_list("sources/", "sources"))

    def search(self, term: str) -> list[SearchResult]:
        term = (term or "").strip()
        if not term:
            return []
        data = self._fetch_list(
            "search/", "search", {"search_field": "name", "search_value": term}
        )
        if not isinstance(data, dict):
            return []
        return parse_list(SearchResult, data.get("title_results"))

    def get_title_details(self, title_id: int) -> TitleDetails:
        data = self.fetch(f"title/{int(title_id)}/details/", cacheable=True, category="details")
        return TitleDetails.from_payload(data)

    def get_seasons(self, title_id: int) -> list[SeasonInfo]:
        return parse_list(SeasonInfo, self._fetch_list(f"title/{int(title_id)}/seasons/", "seasons"))

    def get_episodes(self, title_id: int) -> list[EpisodePayload]:
        return parse_list(
            EpisodePayload, self._fetch_list(f"title/{int(title_id)}/episodes/", "episodes")
        )

    def get_sources_for_title(self, title_id: int) -> list[SourceLinkPayload]:
        return parse_list(
            SourceLinkPayload, self._fetch_list(f"title/{int(title_id)}/sources/", "title_sources")
        )

    def filter_sources(self, links: Iterable[SourceLinkPayload]) -> list[SourceLinkPayload]:
        """Apply the configured source and region allow-lists (empty list = allow all)."""
        sources = set(self.config.enabled_sources)
        regions = set(self.config.enabled_regions)
        return [
            link for link in links
            if (not sources or link.source_id in sources)
            and (not regions or link.region in regions)
        ]
