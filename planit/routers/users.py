"""
User endpoints — fingerprint lifecycle and per-user settings.

POST /users/{uid}/fingerprint is called by the auth backend after signup and
is protected by X-Service-Token. Everything else is called by the app itself
and authenticated with X-User-ID.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from planit.dependencies import CurrentUser, Services, get_services, verify_service_token
from planit.schemas.fingerprint import FingerprintCreate, RadiusSetting, UserFingerprint

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/{uid}/fingerprint", response_model=UserFingerprint)
async def create_fingerprint(
    uid: str,
    body: FingerprintCreate,
    services: Services = Depends(get_services),
    _: None = Depends(verify_service_token),
) -> JSONResponse:
    """
    Create the user's fingerprint with their onboarding answers (idempotent).
    201 on first call, 200 with the existing fingerprint afterwards.
    """
    fingerprint, created = await services.fingerprints.create(uid, body.onboarding_responses)
    return JSONResponse(
        content=fingerprint.model_dump(mode="json"),
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@router.get("/{uid}/fingerprint", response_model=UserFingerprint)
async def get_fingerprint(
    uid: str,
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> UserFingerprint:
    fingerprint = await services.fingerprints.get(uid)
    if fingerprint is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No fingerprint for user {uid}",
        )
    return fingerprint


@router.get("/{uid}/settings/radius", response_model=RadiusSetting)
async def get_radius(
    uid: str,
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> RadiusSetting:
    return RadiusSetting(radius_miles=await services.preferences.get_radius_miles(uid))


@router.put("/{uid}/settings/radius", response_model=RadiusSetting)
async def put_radius(
    uid: str,
    body: RadiusSetting,
    _: str = CurrentUser,
    services: Services = Depends(get_services),
) -> RadiusSetting:
    """Persist the search radius; the next feed request uses it."""
    await services.preferences.set_radius_miles(uid, body.radius_miles)
    logger.info("Radius for uid=%s set to %.2f mi", uid, body.radius_miles)
    return body
