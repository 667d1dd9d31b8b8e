from dataclasses import dataclass

from timevault.domain.enums.user_role import UserRole


@dataclass(frozen=True)
class Caller:
    """Authenticated identity attached to every inbound request."""

    id: str
    email: str | None = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN
