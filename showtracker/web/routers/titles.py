"""
routers/titles — Catalog search, title details, seasons, local episode mirror, resync.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends, Header, Query

from ...services import Services
from ..deps import get_services
from ..schemas import (
    EpisodeResponse, EpisodeSourceResponse, ResyncResponse, SearchResultResponse,
    SeasonResponse, TitleDetailsResponse,
)

router = APIRouter(prefix="/api/v1/titles", tags=["titles"])


@router.get("/search", response_model=list[SearchResultResponse])
def search(
    q: str = Query(..., min_length=1),
    x_user_id: int | None = Header(None),
    svc: Services = Depends(get_services),
):
    results = svc.client.search(q)
    return [
        SearchResultResponse(
            title_id=r.title_id,
            name=r.name,
            type=r.type,
            year=r.year,
            is_tracked=bool(x_user_id) and svc.store.is_tracked(x_user_id, r.title_id),
        )
        for r in results
    ]


@router.get("/{title_id}", response_model=TitleDetailsResponse)
def title_details(
    title_id: int,
    x_user_id: int | None = Header(None),
    svc: Services = Depends(get_services),
):
    d = svc.client.get_title_details(title_id)
    return TitleDetailsResponse(
        title_id=d.title_id or title_id,
        title=d.title,
        type=d.type,
        year=d.year,
        end_year=d.end_year,
        release_date=d.release_date,
        plot_overview=d.plot_overview,
        poster=d.poster,
        genre_names=d.genre_names,
        is_tracked=bool(x_user_id) and svc.store.is_tracked(x_user_id, title_id),
    )


@router.get("/{title_id}/seasons", response_model=list[SeasonResponse])
def seasons(title_id: int, svc: Services = Depends(get_services)):
    return [
        SeasonResponse(
            season_id=s.season_id,
            number=s.number,
            name=s.name,
            air_date=s.air_date,
            episode_count=s.episode_count,
        )
        for s in svc.client.get_seasons(title_id)
    ]


@router.get("/{title_id}/sources", response_model=list[EpisodeSourceResponse])
def title_sources(title_id: int, svc: Services = Depends(get_services)):
    return [EpisodeSourceResponse(**row) for row in svc.store.get_title_sources(title_id)]


@router.get("/{title_id}/episodes", response_model=list[EpisodeResponse])
def episodes(
    title_id: int,
    season: int | None = Query(None, ge=0),
    x_user_id: int | None = Header(None),
    svc: Services = Depends(get_services),
):
    # populate the mirror on first view; later views use the cheap path
    svc.store.resync(title_id)
    watched = set(svc.store.get_watched_episode_ids(x_user_id, title_id)) if x_user_id else set()
    out = []
    for ep in svc.store.get_episodes(title_id, season):
        item = EpisodeResponse.model_validate(ep)
        item.watched = ep.episode_id in watched
        out.append(item)
    return out


@router.get("/{title_id}/episodes/{episode_id}/sources", response_model=list[EpisodeSourceResponse])
def episode_sources(title_id: int, episode_id: int, svc: Services = Depends(get_services)):
    return [EpisodeSourceResponse(**row) for row in svc.store.get_episode_sources(title_id, episode_id)]


@router.post("/{title_id}/resync", response_model=ResyncResponse)
def resync(
    title_id: int,
    force: bool = Query(False),
    svc: Services = Depends(get_services),
):
    end_year = svc.store.resync(title_id, force=force)
    return ResyncResponse(
        title_id=title_id,
        end_year=end_year,
        episodes=len(svc.store.get_episodes(title_id)),
    )
