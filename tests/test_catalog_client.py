"""
Tests for the Watchmode client: cache fast path, stale-on-error fallback, error classification
"""
from datetime import timedelta

import pytest
import requests
from sqlalchemy import select, update

from showtracker.catalog_client import CatalogClient
from showtracker.config import Config
from showtracker.db.models import CacheEntry
from showtracker.errors import (
    ApiError, CatalogError, DecodeError, MissingCredential, UpstreamError,
)
from showtracker.ratelimit import RateLimiter

from conftest import API_URL, FakeResponse

DETAILS = "title/123/details/"
FOO = {"title": "Foo", "end_year": 2020}


def _expire_all(session, clock):
    session.execute(update(CacheEntry).values(expires_at=clock.now - timedelta(days=1)))
    session.commit()


class TestCacheFastPath:
    def test_details_scenario_caches_for_thirty_days(self, client, http, session, clock):
        http.routes[DETAILS] = FOO

        first = client.fetch(DETAILS, cacheable=True, category="details", ttl=2_592_000)
        assert first == FOO
        row = session.scalars(select(CacheEntry)).one()
        assert row.cache_type == "details"
        assert row.expires_at == clock.now + timedelta(days=30)
        assert "secret-key-123" not in row.request_path

        second = client.fetch(DETAILS, cacheable=True, category="details", ttl=2_592_000)
        assert second == FOO
        assert http.count(DETAILS) == 1

    def test_ttl_defaults_follow_category(self, client, http, session, clock):
        http.routes["search/"] = {"title_results": []}
        http.routes["title/123/episodes/"] = []

        client.fetch("search/", {"search_value": "x"}, cacheable=True, category="search")
        client.fetch("title/123/episodes/", cacheable=True, category="episodes")

        rows = {r.cache_type: r for r in session.scalars(select(CacheEntry))}
        assert rows["search"].expires_at == clock.now + timedelta(hours=12)
        assert rows["episodes"].expires_at == clock.now + timedelta(days=7)

    def test_non_cacheable_never_touches_cache(self, client, http, session):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS)
        client.fetch(DETAILS)
        assert http.count(DETAILS) == 2
        assert session.scalars(select(CacheEntry)).first() is None

    def test_expired_entry_is_refreshed_by_live_call(self, client, http, session, clock):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS, cacheable=True, category="details")
        _expire_all(session, clock)

        http.routes[DETAILS] = {"title": "Foo", "end_year": 2021}
        assert client.fetch(DETAILS, cacheable=True, category="details")["end_year"] == 2021
        assert http.count(DETAILS) == 2
        assert len(session.scalars(select(CacheEntry)).all()) == 1


class TestStaleFallback:
    def test_expired_payload_served_when_live_call_fails(self, client, http, session, clock):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS, cacheable=True, category="details", ttl=2_592_000)
        _expire_all(session, clock)
        blob_before = session.scalars(select(CacheEntry)).one().payload

        http.routes[DETAILS] = requests.Timeout("read timed out")
        assert client.fetch(DETAILS, cacheable=True, category="details") == FOO

        session.expire_all()
        row = session.scalars(select(CacheEntry)).one()
        assert row.payload == blob_before

    @pytest.mark.parametrize("failure", [
        requests.ConnectionError("boom"),
        FakeResponse(text="<html>502 Bad Gateway</html>", status_code=502),
        FakeResponse(text="not json"),
        FakeResponse({"error": True, "code": 429, "message": "quota exceeded"}),
    ])
    def test_failure_never_overwrites_cache(self, client, http, session, clock, failure):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS, cacheable=True, category="details")
        _expire_all(session, clock)
        before = session.scalars(select(CacheEntry)).one()
        blob, updated = before.payload, before.last_updated_at

        http.routes[DETAILS] = failure
        assert client.fetch(DETAILS, cacheable=True, category="details") == FOO

        session.expire_all()
        after = session.scalars(select(CacheEntry)).one()
        assert after.payload == blob
        assert after.last_updated_at == updated

    def test_fallback_only_on_cacheable_path(self, client, http, session, clock):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS, cacheable=True, category="details")
        _expire_all(session, clock)
        http.routes[DETAILS] = requests.ConnectionError("down")

        with pytest.raises(UpstreamError):
            client.fetch(DETAILS, cacheable=False)
        assert client.fetch(DETAILS, cacheable=True, category="details") == FOO

    def test_error_propagates_without_any_entry(self, client, http, session):
        http.routes[DETAILS] = {"error": True, "code": 401, "message": "invalid key"}

        with pytest.raises(ApiError) as exc:
            client.fetch(DETAILS, cacheable=True, category="details")
        assert exc.value.message == "API Error: 401 - invalid key"
        assert session.scalars(select(CacheEntry)).first() is None


class TestErrorClassification:
    def test_missing_credential_makes_no_request(self, cache, http):
        client = CatalogClient(Config(api_key="", api_url=API_URL), cache=cache, http=http,
                               limiter=RateLimiter(rate=0))
        with pytest.raises(MissingCredential) as exc:
            client.fetch(DETAILS, cacheable=True, category="details")
        assert "API key is missing" in exc.value.message
        assert http.calls == []

    def test_transport_failure(self, client, http):
        http.routes[DETAILS] = requests.Timeout("slow")
        with pytest.raises(UpstreamError):
            client.fetch(DETAILS)

    def test_decode_failure(self, client, http):
        http.routes[DETAILS] = FakeResponse(text="<<garbage>>")
        with pytest.raises(DecodeError):
            client.fetch(DETAILS)

    def test_embedded_error_object(self, client, http):
        http.routes[DETAILS] = {"error": {"code": 429, "message": "Over quota"}}
        with pytest.raises(ApiError) as exc:
            client.fetch(DETAILS)
        assert exc.value.api_code == 429

    def test_success_false_body(self, client, http):
        with pytest.raises(ApiError) as exc:
            client.fetch("title/999/details/")
        assert exc.value.api_code == 404

    def test_all_failures_are_catalog_errors(self):
        for cls in (UpstreamError, DecodeError, MissingCredential):
            assert issubclass(cls, CatalogError)
        assert isinstance(ApiError(1, "x"), CatalogError)


class TestRequestShape:
    def test_live_request_carries_key_timeout_and_accept(self, client, http):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS)
        call = http.calls[0]
        assert call["params"]["apiKey"] == "secret-key-123"
        assert call["timeout"] == 15.0
        assert call["headers"]["Accept"] == "application/json"

    def test_request_log_is_redacted_and_per_client(self, client, http, config, cache):
        http.routes[DETAILS] = FOO
        client.fetch(DETAILS, cacheable=True, category="details")
        client.fetch(DETAILS, cacheable=True, category="details")

        assert client.request_log.urls == [API_URL + DETAILS + "?apiKey=[REDACTED]"] * 2
        other = CatalogClient(config, cache=cache, http=http, limiter=RateLimiter(rate=0))
        assert len(other.request_log) == 0


class TestWrappers:
    def test_search_maps_title_results(self, client, http):
        http.routes["search/"] = {"title_results": [
            {"id": 123, "name": "Foo", "type": "tv_series", "year": 2018},
            {"name": "no id"},
        ], "people_results": []}
        results = client.search("Foo")
        assert [(r.title_id, r.name, r.year) for r in results] == [(123, "Foo", 2018)]
        assert http.calls[0]["params"]["search_field"] == "name"

    def test_search_failure_returns_empty(self, client, http):
        http.routes["search/"] = requests.ConnectionError("down")
        assert client.search("Foo") == []
        assert client.search("   ") == []

    def test_list_wrappers_still_raise_missing_credential(self, cache, http):
        client = CatalogClient(Config(api_key="", api_url=API_URL), cache=cache, http=http,
                               limiter=RateLimiter(rate=0))
        with pytest.raises(MissingCredential):
            client.get_episodes(123)

    def test_episodes_and_title_sources(self, client, http, show_routes):
        http.routes.update(show_routes)
        http.routes["title/123/sources/"] = [
            {"source_id": 203, "region": "us", "web_url": "https://n/1"},
            {"source_id": 26, "region": "GB", "web_url": "https://p/1"},
        ]
        episodes = client.get_episodes(123)
        assert [e.episode_id for e in episodes] == [1001, 1002, 2001, 2002]
        assert episodes[0].sources[0].source_id == 203

        links = client.get_sources_for_title(123)
        assert [link.region for link in links] == ["US", "GB"]
        assert client.get_sources_for_title(999) == []

    def test_filter_sources(self, client, http):
        http.routes["title/5/sources/"] = [
            {"source_id": 203, "region": "US"},
            {"source_id": 203, "region": "GB"},
            {"source_id": 26, "region": "US"},
        ]
        links = client.get_sources_for_title(5)
        assert len(client.filter_sources(links)) == 3

        client.config.enabled_sources = [203]
        client.config.enabled_regions = ["US"]
        kept = client.filter_sources(links)
        assert [(link.source_id, link.region) for link in kept] == [(203, "US")]
