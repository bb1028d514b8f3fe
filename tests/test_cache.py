"""
Tests for the persistent API response cache
"""
from datetime import timedelta

from sqlalchemy import func, select

from showtracker.cache import cache_key, redact, request_path
from showtracker.db.models import CacheEntry

from conftest import API_URL


class TestFingerprint:
    def test_secret_is_excluded_from_key(self):
        a = cache_key(API_URL, "search/", {"search_value": "foo", "apiKey": "one"})
        b = cache_key(API_URL, "search/", {"search_value": "foo", "apiKey": "two"})
        assert a == b
        assert a == cache_key(API_URL, "search/", {"search_value": "foo"})

    def test_param_order_does_not_matter(self):
        a = cache_key(API_URL, "search/", {"search_field": "name", "search_value": "foo"})
        b = cache_key(API_URL, "search/", {"search_value": "foo", "search_field": "name"})
        assert a == b

    def test_different_params_differ(self):
        assert cache_key(API_URL, "search/", {"search_value": "foo"}) != \
            cache_key(API_URL, "search/", {"search_value": "bar"})
        assert cache_key(API_URL, "title/1/details/") != cache_key(API_URL, "title/2/details/")

    def test_request_path_is_credential_free(self):
        path = request_path(API_URL, "search/", {"search_value": "foo", "apiKey": "s3cret"})
        assert "s3cret" not in path
        assert path == API_URL + "search/?search_value=foo"
        assert redact(path).endswith("&apiKey=[REDACTED]")
        assert redact(API_URL + "sources/").endswith("sources/?apiKey=[REDACTED]")


class TestApiCache:
    def test_upsert_keeps_one_row_with_latest_payload(self, cache, session, clock):
        cache.upsert("k1", "path", "details", {"v": 1}, ttl=60)
        first = session.scalars(select(CacheEntry)).one()
        first_expiry = first.expires_at

        clock.now += timedelta(seconds=30)
        cache.upsert("k1", "path", "details", {"v": 2}, ttl=60)

        assert session.scalar(select(func.count(CacheEntry.id))) == 1
        hit, payload = cache.get("k1")
        assert hit and payload == {"v": 2}
        row = session.scalars(select(CacheEntry)).one()
        assert row.expires_at == first_expiry + timedelta(seconds=30)
        assert row.first_seen_at < row.last_updated_at

    def test_fresh_lookup_ignores_expired_rows(self, cache, clock):
        cache.upsert("k1", "path", "search", ["a"], ttl=10)
        clock.now += timedelta(seconds=11)

        assert cache.get("k1") == (False, None)
        assert cache.get("k1", include_expired=True) == (True, ["a"])

    def test_miss(self, cache):
        assert cache.get("nope") == (False, None)
        assert cache.get("nope", include_expired=True) == (False, None)

    def test_null_payload_is_still_a_hit(self, cache):
        cache.upsert("k1", "path", "details", None, ttl=10)
        assert cache.get("k1") == (True, None)

    def test_purge_by_category(self, cache):
        cache.upsert("a", "p", "search", [], ttl=10)
        cache.upsert("b", "p", "details", {}, ttl=10)
        cache.upsert("c", "p", "details", {}, ttl=10)

        assert cache.counts_by_type() == {"search": 1, "details": 2}
        assert cache.purge("details") == 2
        assert cache.count() == 1
        assert cache.purge() == 1
        assert cache.count() == 0
