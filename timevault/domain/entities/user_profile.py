from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from timevault.domain.enums.user_role import UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserProfile:
    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.USER
    profile_pic: str | None = None
    rating: float = 0.0
    created_at: datetime = field(default_factory=_utcnow)

    def public_contact(self) -> dict[str, Any]:
        """Fields shown to the other party of a transaction."""
        return {"id": self.id, "name": self.name, "email": self.email}

    def public_seller(self) -> dict[str, Any]:
        """Fields shown next to a listing."""
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "profile_pic": self.profile_pic,
        }
