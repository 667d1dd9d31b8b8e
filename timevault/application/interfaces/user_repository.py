from abc import ABC, abstractmethod
from typing import Any

from timevault.domain.entities.user_profile import UserProfile


class UserRepository(ABC):
    """Port for reading and editing user profiles."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> UserProfile | None:
        ...

    @abstractmethod
    async def update(self, user_id: str, changes: dict[str, Any]) -> UserProfile | None:
        ...
