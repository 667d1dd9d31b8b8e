from datetime import datetime, timezone
from typing import Any

from timevault.application.interfaces.document_store import Document, DocumentStore
from timevault.application.interfaces.user_repository import UserRepository
from timevault.domain.entities.user_profile import UserProfile
from timevault.domain.enums.user_role import UserRole
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import load_datetime

# Profile fields a user may change about themselves
_EDITABLE = frozenset({"name", "profile_pic"})


def _to_domain(document: Document) -> UserProfile:
    try:
        role = UserRole(document.get("role", UserRole.USER.value))
    except ValueError:
        role = UserRole.USER
    return UserProfile(
        id=document["id"],
        name=document.get("name") or "",
        email=document.get("email", ""),
        role=role,
        profile_pic=document.get("profile_pic"),
        rating=float(document.get("rating") or 0),
        created_at=load_datetime(document.get("created_at")) or datetime.now(timezone.utc),
    )


class DocumentUserRepository(UserRepository):
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_by_id(self, user_id: str) -> UserProfile | None:
        document = await self._store.get(collections.USERS, user_id)
        return _to_domain(document) if document is not None else None

    async def update(self, user_id: str, changes: dict[str, Any]) -> UserProfile | None:
        allowed = {k: v for k, v in changes.items() if k in _EDITABLE}
        if not await self._store.update(collections.USERS, user_id, allowed):
            return None
        return await self.get_by_id(user_id)
