"""
app — FastAPI application factory.
"""
from __future__ import annotations
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from ..config import Config, load_config
from ..db.session import init_db
from ..errors import (
    CatalogError, InvalidParameters, MissingCredential, NotTracked, ShowTrackerError,
)
from ..ratelimit import RateLimiter

log = structlog.get_logger()

_STATUS = [
    (MissingCredential, 503),
    (CatalogError, 502),
    (NotTracked, 409),
    (InvalidParameters, 400),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = app.state.config
    log.info("web_started", host=cfg.web_host, port=cfg.web_port,
             api_key_configured=bool(cfg.api_key))
    yield
    log.info("web_stopped")


def create_app(config: Config | None = None, session_factory: sessionmaker | None = None) -> FastAPI:
    cfg = config or load_config()
    if session_factory is None:
        engine = init_db(cfg.db_url or None)
        session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    app = FastAPI(title="showtracker", lifespan=lifespan)
    app.state.config = cfg
    app.state.session_factory = session_factory
    app.state.limiter = RateLimiter(rate=cfg.rate_limit_rps)

    from .routers import system, titles, tracker
    app.include_router(system.router)
    app.include_router(titles.router)
    app.include_router(tracker.router)

    @app.exception_handler(ShowTrackerError)
    async def _domain_error_handler(request: Request, exc: ShowTrackerError):
        status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 500)
        log.warning("api_domain_error", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})

    @app.middleware("http")
    async def _catalog_debug_header(request: Request, call_next):
        response = await call_next(request)
        request_log = getattr(request.state, "request_log", None)
        if cfg.debug and request_log is not None and len(request_log):
            response.headers["X-Catalog-Requests"] = " ".join(request_log.urls)
        return response

    return app
