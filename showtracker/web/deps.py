"""
deps — FastAPI dependencies (DB session, config, services, caller id).
"""
from __future__ import annotations
from typing import Generator
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from ..catalog_client import RequestLog
from ..config import Config
from ..services import Services, build_services


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency: yields a DB session, closes after request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_services(
    request: Request,
    db: Session = Depends(get_db),
    config: Config = Depends(get_config),
) -> Services:
    # one URL log per HTTP request; the debug header middleware reads it back
    request_log = RequestLog()
    request.state.request_log = request_log
    return build_services(
        db, config,
        request_log=request_log,
        http=getattr(request.app.state, "http", None),
        limiter=request.app.state.limiter,
    )


def get_user_id(x_user_id: int | None = Header(None)) -> int:
    """The host application authenticates; we only need the resolved user id."""
    if not x_user_id or x_user_id <= 0:
        raise HTTPException(401, "X-User-Id header required")
    return x_user_id
