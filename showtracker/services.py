"""
services — Explicit wiring of the catalog client and sync store.

Callers (web dependencies, CLI commands) build one pair per request/command
and pass it down; nothing here is a process-wide singleton.
"""
from __future__ import annotations
from dataclasses import dataclass

import requests
from sqlalchemy.orm import Session

from .cache import ApiCache
from .catalog_client import CatalogClient, RequestLog
from .config import Config
from .ratelimit import RateLimiter
from .store import SyncStore


@dataclass
class Services:
    config: Config
    client: CatalogClient
    store: SyncStore
    request_log: RequestLog


def build_services(
    session: Session,
    config: Config,
    request_log: RequestLog | None = None,
    http: requests.Session | None = None,
    limiter: RateLimiter | None = None,
) -> Services:
    request_log = request_log if request_log is not None else RequestLog()
    client = CatalogClient(
        config,
        cache=ApiCache(session),
        http=http,
        request_log=request_log,
        limiter=limiter,
    )
    return Services(config=config, client=client, store=SyncStore(session, client), request_log=request_log)
