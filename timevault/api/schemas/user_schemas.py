from datetime import datetime

from pydantic import BaseModel

from timevault.domain.enums.user_role import UserRole


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    profile_pic: str | None = None
    rating: float
    created_at: datetime

    model_config = {"from_attributes": True}


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    profile_pic: str | None = None


class ProfileEnvelope(BaseModel):
    message: str
    user: ProfileResponse
