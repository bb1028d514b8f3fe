"""
Pytest fixtures for showtracker tests: in-memory DB, fake Watchmode transport, fixed clock.
"""
from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker

from showtracker.cache import ApiCache
from showtracker.catalog_client import CatalogClient, RequestLog
from showtracker.config import Config
from showtracker.db.models import Base
from showtracker.db.session import get_engine
from showtracker.ratelimit import RateLimiter
from showtracker.store import SyncStore

API_URL = "https://api.watchmode.com/v1/"
TODAY = date(2026, 10, 19)


class FakeResponse:
    def __init__(self, body=None, status_code=200, text=None):
        self._body = body
        self.status_code = status_code
        self.text = text

    def json(self):
        if self.text is not None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body


class FakeHttp:
    """
    Stands in for requests.Session. Routes map an endpoint ("title/1/details/")
    to a JSON body, a FakeResponse, or an exception instance to raise.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        endpoint = url[len(API_URL):]
        self.calls.append({"endpoint": endpoint, "params": dict(params or {}),
                           "headers": headers, "timeout": timeout})
        if endpoint not in self.routes:
            return FakeResponse({"success": False, "statusCode": 404,
                                 "statusMessage": "The resource could not be found."}, 404)
        route = self.routes[endpoint]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)

    def count(self, endpoint):
        return sum(1 for c in self.calls if c["endpoint"] == endpoint)


class Clock:
    def __init__(self, now=datetime(2026, 10, 19, 12, 0, 0)):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def session():
    engine = get_engine("sqlite://")
    Base.metadata.create_all(engine)
    s = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield s
    s.close()
    engine.dispose()


@pytest.fixture
def config():
    return Config(api_key="secret-key-123", api_url=API_URL, rate_limit_rps=0)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def cache(session, clock):
    return ApiCache(session, clock=clock)


@pytest.fixture
def client(config, cache, http):
    return CatalogClient(config, cache=cache, http=http, request_log=RequestLog(),
                         limiter=RateLimiter(rate=0))


@pytest.fixture
def store(session, client):
    return SyncStore(session, client, today=lambda: TODAY)


def episode(ep_id, season, number, air_date, name=None, sources=None):
    return {
        "id": ep_id,
        "name": name or f"Episode {number}",
        "season_number": season,
        "episode_number": number,
        "release_date": air_date,
        "overview": f"Overview {ep_id}",
        "thumbnail_url": f"https://img.example/{ep_id}.jpg",
        "sources": sources if sources is not None else [
            {"source_id": 203, "name": "Netflix", "type": "sub", "region": "US",
             "web_url": f"https://netflix.example/{ep_id}"},
            {"source_id": 26, "name": "Prime Video", "type": "sub", "region": "GB",
             "web_url": f"https://prime.example/{ep_id}"},
        ],
    }


@pytest.fixture
def show_routes():
    """A running series (title 123) with two seasons, one episode airing tomorrow."""
    return {
        "title/123/details/": {"id": 123, "title": "Foo", "type": "tv_series",
                               "year": 2018, "end_year": 2020, "release_date": "2018-03-01"},
        "title/123/episodes/": [
            episode(1001, 1, 1, "2018-03-01"),
            episode(1002, 1, 2, "2018-03-08"),
            episode(2001, 2, 1, "2026-10-19"),
            episode(2002, 2, 2, "2026-10-20"),
        ],
        "sources/": [
            {"id": 203, "name": "Netflix", "type": "sub", "logo_100px": "https://logo/203.png",
             "regions": ["US", "GB"]},
            {"id": 26, "name": "Prime Video", "type": "sub", "logo_100px": "https://logo/26.png",
             "regions": ["US", "GB"]},
        ],
    }
