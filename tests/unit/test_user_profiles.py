"""Unit tests for the UserProfiles use case."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from timevault.application.use_cases.user_profiles import UpdateProfileInput, UserProfiles
from timevault.domain.entities.caller import Caller
from timevault.domain.entities.user_profile import UserProfile
from timevault.domain.errors import NotFoundError, ValidationError


def _make_repo(profile: UserProfile | None = None) -> MagicMock:
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=profile)
    repo.update = AsyncMock(return_value=profile)
    return repo


class TestGetProfile:
    @pytest.mark.asyncio
    async def test_defaults_to_caller(self) -> None:
        repo = _make_repo(UserProfile(id="u1", name="Ann"))
        profile = await UserProfiles(repo).get_profile(Caller(id="u1"))
        assert profile.name == "Ann"
        repo.get_by_id.assert_awaited_once_with("u1")

    @pytest.mark.asyncio
    async def test_explicit_user_id_wins(self) -> None:
        repo = _make_repo(UserProfile(id="u2"))
        await UserProfiles(repo).get_profile(Caller(id="u1"), "u2")
        repo.get_by_id.assert_awaited_once_with("u2")

    @pytest.mark.asyncio
    async def test_anonymous_without_user_id(self) -> None:
        with pytest.raises(ValidationError):
            await UserProfiles(_make_repo()).get_profile(None)

    @pytest.mark.asyncio
    async def test_unknown_user(self) -> None:
        with pytest.raises(NotFoundError, match="No user found with ID: ghost"):
            await UserProfiles(_make_repo(None)).get_profile(None, "ghost")


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_passes_only_provided_fields(self) -> None:
        repo = _make_repo(UserProfile(id="u1", name="Annie"))
        await UserProfiles(repo).update_profile(Caller(id="u1"), UpdateProfileInput(name="Annie"))
        repo.update.assert_awaited_once_with("u1", {"name": "Annie"})

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            await UserProfiles(_make_repo()).update_profile(
                Caller(id="u1"), UpdateProfileInput(name="  ")
            )

    @pytest.mark.asyncio
    async def test_missing_profile(self) -> None:
        with pytest.raises(NotFoundError):
            await UserProfiles(_make_repo(None)).update_profile(
                Caller(id="u1"), UpdateProfileInput(profile_pic="https://example.com/a.png")
            )
