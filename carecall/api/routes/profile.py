from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from carecall.api.deps import get_current_user, get_profile_service
from carecall.schemas.profile import (
    PatientProfileItem,
    PatientProfileResponse,
    PatientProfileUpsert,
)
from carecall.services.auth import AuthenticatedUser
from carecall.services.profiles import PatientProfileService, ProfileValidationError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.options("/user-info", include_in_schema=False)
async def user_info_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok")


@router.post(
    "/user-info",
    response_model=PatientProfileResponse,
    summary="Create or replace the caller's patient profile.",
)
async def save_user_info(
    payload: PatientProfileUpsert,
    user: AuthenticatedUser = Depends(get_current_user),
    service: PatientProfileService = Depends(get_profile_service),
) -> PatientProfileResponse:
    try:
        profile = await service.save_profile(user.user_id, payload)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to save profile for user %s", user.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save user information",
        ) from exc

    return PatientProfileResponse(
        message="User information saved successfully",
        data=PatientProfileItem.model_validate(profile),
    )


@router.get(
    "/user-info",
    response_model=PatientProfileResponse,
    summary="Return the caller's patient profile.",
)
async def get_user_info(
    user: AuthenticatedUser = Depends(get_current_user),
    service: PatientProfileService = Depends(get_profile_service),
) -> PatientProfileResponse:
    profile = await service.get_profile(user.user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No user information found")
    return PatientProfileResponse(
        message="User information retrieved successfully",
        data=PatientProfileItem.model_validate(profile),
    )
