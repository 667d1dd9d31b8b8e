from dataclasses import dataclass

import structlog

from timevault.application.interfaces.user_repository import UserRepository
from timevault.domain.entities.caller import Caller
from timevault.domain.entities.user_profile import UserProfile
from timevault.domain.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass
class UpdateProfileInput:
    name: str | None = None
    profile_pic: str | None = None


class UserProfiles:
    """Use case: read any user's profile and edit your own."""

    def __init__(self, user_repo: UserRepository) -> None:
        self._user_repo = user_repo

    async def get_profile(self, caller: Caller | None, user_id: str | None = None) -> UserProfile:
        target = user_id or (caller.id if caller else None)
        if not target:
            raise ValidationError("Please provide user_id or authenticate")

        profile = await self._user_repo.get_by_id(target)
        if profile is None:
            raise NotFoundError("user", target)
        return profile

    async def update_profile(self, caller: Caller, input_data: UpdateProfileInput) -> UserProfile:
        changes = {k: v for k, v in input_data.__dict__.items() if v is not None}
        if "name" in changes and not str(changes["name"]).strip():
            raise ValidationError("Name cannot be empty")

        profile = await self._user_repo.update(caller.id, changes)
        if profile is None:
            raise NotFoundError("user", caller.id)

        logger.info("profile_updated", user_id=caller.id, fields=sorted(changes))
        return profile
