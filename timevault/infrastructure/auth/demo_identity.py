from timevault.application.interfaces.identity_provider import IdentityProvider
from timevault.domain.entities.caller import Caller


class DemoIdentityProvider(IdentityProvider):
    """Accepts any request, token or not, as one fixed demo user."""

    def __init__(self, caller: Caller) -> None:
        self._caller = caller

    async def verify(self, token: str | None) -> Caller:
        return self._caller
