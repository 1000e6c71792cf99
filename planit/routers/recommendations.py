"""
Recommendations router — the personalised category feed.

Endpoints:
  GET  /recommendations/{uid}                                 — category feed
  GET  /recommendations/{uid}/categories/{category_id}/more   — infinite scroll
  POST /recommendations/{uid}/interactions                    — record a reaction

Authentication: X-User-ID header must match the uid in the path.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from planit.dependencies import CurrentUser, Services, get_services
from planit.schemas.category import CategoryFeed, MorePlacesResponse
from planit.schemas.fingerprint import InteractionRequest
from planit.schemas.place import Coordinates
from planit.services.category_manager import CategoryNotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


def _location(lat: float, lng: float) -> Coordinates:
    return Coordinates(lat=lat, lng=lng)


@router.get("/{uid}", response_model=CategoryFeed)
async def recommendations(
    uid: str,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    refresh: bool = Query(default=False),
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> CategoryFeed:
    """
    Return the user's categories, each holding ranked nearby places.

    - Categories are generated by Gemini from the user's fingerprint
    - Fewer than three usable categories switches to fixed templates
    - Never empty: demo categories are served when no places are reachable
    - Cached per user, location and radius; pass ?refresh=true to regenerate
    """
    return await services.categories.generate_feed(uid, _location(lat, lng), refresh=refresh)


@router.get("/{uid}/categories/{category_id}/more", response_model=MorePlacesResponse)
async def more_places(
    uid: str,
    category_id: str,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> MorePlacesResponse:
    """Up to 10 further places for a category of the current feed, nearest first."""
    try:
        places = await services.categories.fetch_more_places(uid, category_id, _location(lat, lng))
    except CategoryNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Category {category_id} is not in the current feed",
        )
    return MorePlacesResponse(category_id=category_id, places=places)


@router.post("/{uid}/interactions", status_code=status.HTTP_202_ACCEPTED)
async def record_interaction(
    uid: str,
    body: InteractionRequest,
    background_tasks: BackgroundTasks,
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> dict:
    """
    Accept a reaction to a place. The fingerprint update runs after the
    response is sent; failures are logged, never reported to the caller.
    """
    background_tasks.add_task(
        services.recorder.record,
        uid,
        body.place,
        body.interaction,
        body.user_location,
    )
    return {"accepted": True, "interaction": body.interaction.value}
