from fastapi import APIRouter, Depends, Query

from timevault.api.dependencies import get_current_caller, get_optional_caller, get_user_profiles
from timevault.api.schemas.user_schemas import ProfileEnvelope, ProfileResponse, UpdateProfileRequest
from timevault.application.use_cases.user_profiles import UpdateProfileInput, UserProfiles
from timevault.domain.entities.caller import Caller

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: str | None = Query(default=None),
    caller: Caller | None = Depends(get_optional_caller),
    profiles: UserProfiles = Depends(get_user_profiles),
) -> ProfileResponse:
    """Your own profile, or anyone's with ``?user_id=``."""
    profile = await profiles.get_profile(caller, user_id)
    return ProfileResponse.model_validate(profile)


@router.put("/profile", response_model=ProfileEnvelope)
async def update_profile(
    body: UpdateProfileRequest,
    caller: Caller = Depends(get_current_caller),
    profiles: UserProfiles = Depends(get_user_profiles),
) -> ProfileEnvelope:
    profile = await profiles.update_profile(caller, UpdateProfileInput(**body.model_dump()))
    return ProfileEnvelope(
        message="Profile updated successfully",
        user=ProfileResponse.model_validate(profile),
    )
