from abc import ABC, abstractmethod

from timevault.domain.entities.caller import Caller


class IdentityProvider(ABC):
    """Port that turns a bearer token into the calling identity."""

    @abstractmethod
    async def verify(self, token: str | None) -> Caller:
        """Raise AuthenticationError when the token is missing or invalid."""
        ...
