"""
routers/tracker — Per-user tracking: add/remove titles, toggle watch state, unwatched and upcoming lists.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends

from ...services import Services
from ..deps import get_services, get_user_id
from ..schemas import (
    BulkToggleRequest, CountResponse, MovieResponse, ShowResponse, TrackRequest,
    TrackResponse, UnwatchedEpisodeResponse, UpcomingDayResponse, WatchToggleRequest,
    WatchedIdsResponse,
)

router = APIRouter(prefix="/api/v1/tracker", tags=["tracker"])


@router.get("/shows", response_model=list[ShowResponse])
def tracked_shows(user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    return [ShowResponse(**row) for row in svc.store.get_tracked_shows(user_id)]


@router.get("/movies", response_model=list[MovieResponse])
def tracked_movies(user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    return [MovieResponse(**row) for row in svc.store.get_tracked_movies(user_id)]


@router.get("/unwatched", response_model=list[UnwatchedEpisodeResponse])
def unwatched(user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    return [UnwatchedEpisodeResponse(**row) for row in svc.store.get_unwatched_episodes(user_id)]


@router.get("/upcoming", response_model=list[UpcomingDayResponse])
def upcoming(user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    return [
        UpcomingDayResponse(
            air_date=day,
            episodes=[UnwatchedEpisodeResponse(**row) for row in rows],
        )
        for day, rows in svc.store.get_upcoming_episodes(user_id).items()
    ]


@router.post("", response_model=TrackResponse, status_code=201)
def track(
    body: TrackRequest,
    user_id: int = Depends(get_user_id),
    svc: Services = Depends(get_services),
):
    row_id = svc.store.add_tracked(
        user_id,
        body.title_id,
        body.title_name,
        total_episodes=body.total_episodes,
        item_type=body.item_type,
        release_date=body.release_date,
        is_watched=body.is_watched,
        total_seasons=body.total_seasons,
    )
    return TrackResponse(id=row_id, title_id=body.title_id, action="added",
                         message="Show added to tracker!")


@router.delete("/{title_id}", response_model=TrackResponse)
def untrack(title_id: int, user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    removed = svc.store.remove_tracked(user_id, title_id)
    return TrackResponse(
        title_id=title_id,
        action="removed" if removed else "noop",
        message="Show removed from tracker." if removed else "Show was not tracked.",
    )


@router.get("/{title_id}/watched", response_model=WatchedIdsResponse)
def watched_ids(title_id: int, user_id: int = Depends(get_user_id), svc: Services = Depends(get_services)):
    ids = svc.store.get_watched_episode_ids(user_id, title_id)
    return WatchedIdsResponse(title_id=title_id, episode_ids=ids, count=len(ids))


@router.put("/{title_id}/episodes/{episode_id}", response_model=TrackResponse)
def toggle_episode(
    title_id: int,
    episode_id: int,
    body: WatchToggleRequest,
    user_id: int = Depends(get_user_id),
    svc: Services = Depends(get_services),
):
    svc.store.toggle_episode_watch(user_id, title_id, episode_id, body.watched)
    return TrackResponse(
        title_id=title_id,
        action="watched" if body.watched else "unwatched",
        message="Episode marked watched." if body.watched else "Episode marked unwatched.",
    )


@router.put("/{title_id}/bulk", response_model=CountResponse)
def toggle_bulk(
    title_id: int,
    body: BulkToggleRequest,
    user_id: int = Depends(get_user_id),
    svc: Services = Depends(get_services),
):
    return CountResponse(count=svc.store.toggle_bulk(user_id, title_id, body.watched, body.season))


@router.put("/{title_id}/movie", response_model=TrackResponse)
def toggle_movie(
    title_id: int,
    body: WatchToggleRequest,
    user_id: int = Depends(get_user_id),
    svc: Services = Depends(get_services),
):
    svc.store.toggle_movie_watched(user_id, title_id, body.watched)
    return TrackResponse(
        title_id=title_id,
        action="watched" if body.watched else "unwatched",
        message="Movie marked watched." if body.watched else "Movie marked unwatched.",
    )
