"""
DevConnect Backend: Profile Service Tests
===========================================
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from devconnect.exceptions import ConflictError, NotFoundError
from devconnect.models import Profile
from devconnect.services.profile_service import ProfileService


class TestProfileDirectory:

    @pytest.mark.asyncio
    async def test_list_and_search(self, store, seed):
        await seed.profile(username="ada", full_name="Ada Lovelace")
        await seed.profile(username="grace", full_name="Grace Hopper")
        await seed.profile(username="linus_t", full_name="Linus Torvalds")
        service = ProfileService(store)

        everyone = await service.list_profiles()
        assert everyone.total == 3

        by_name = await service.list_profiles(search="hopper")
        assert [p.username for p in by_name.data] == ["grace"]

        # "_" is a literal, not a LIKE wildcard
        assert (await service.search_profiles("a_a")).data == []
        assert [p.username for p in (await service.search_profiles("us_t")).data] == ["linus_t"]

    @pytest.mark.asyncio
    async def test_blank_search_returns_nothing(self, store, seed):
        await seed.profile(username="ada")
        result = await ProfileService(store).search_profiles("   ")
        assert result.data == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_search_is_paginated(self, store, seed):
        for i in range(3):
            await seed.profile(username=f"dev_{i}")
        await seed.profile(username="grace")

        result = await ProfileService(store).search_profiles("dev", page=2, limit=2)

        assert result.total == 3
        assert len(result.data) == 1
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_response_hides_email(self, store, seed):
        profile = await seed.profile(username="ada", email="ada@example.com")
        result = await ProfileService(store).get_profile(profile.id)
        assert result.data.username == "ada"
        assert "email" not in result.data.model_dump()

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, store):
        result = await ProfileService(store).get_profile(uuid.uuid4())
        assert isinstance(result.error, NotFoundError)


class TestProfileStats:

    @pytest.mark.asyncio
    async def test_counts(self, store, seed):
        now = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)
        await seed.profile(created_at=datetime(2024, 5, 3, tzinfo=timezone.utc), updated_at=now - timedelta(days=1))
        await seed.profile(created_at=datetime(2024, 4, 10, tzinfo=timezone.utc), updated_at=now - timedelta(days=10))
        await seed.profile(created_at=datetime(2023, 1, 1, tzinfo=timezone.utc), updated_at=now - timedelta(days=90))

        result = await ProfileService(store).get_stats(now=now)

        assert result.data.total_profiles == 3
        assert result.data.active_profiles == 2
        assert result.data.new_profiles_this_month == 1


class TestUpdateProfile:

    @pytest.mark.asyncio
    async def test_updates_only_editable_fields(self, store, seed, make_user):
        user = make_user()
        await seed.profile(id=user.id, username="before", role="user")

        result = await ProfileService(store).update_profile(
            user, {"username": "after", "bio": "Hello", "role": "admin"}
        )

        assert result.data.username == "after"
        assert result.data.bio == "Hello"
        stored = await seed.get(Profile, user.id)
        assert stored.role == "user"

    @pytest.mark.asyncio
    async def test_username_taken(self, store, seed, make_user):
        await seed.profile(username="taken")
        user = make_user()
        await seed.profile(id=user.id, username="mine")

        result = await ProfileService(store).update_profile(user, {"username": "taken"})

        assert isinstance(result.error, ConflictError)
        assert result.error.status_code == 409
        assert (await seed.get(Profile, user.id)).username == "mine"

    @pytest.mark.asyncio
    async def test_missing_profile(self, store, make_user):
        result = await ProfileService(store).update_profile(make_user(), {"bio": "x"})
        assert isinstance(result.error, NotFoundError)
