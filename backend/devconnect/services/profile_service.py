"""
DevConnect Backend: Profile Service
=====================================

What:  Public profile directory (list, search, detail, stats) and the
       caller's own profile update.
How:   Reads run as `anon`; update_profile runs as the caller, so the
       `profiles_self_update` RLS policy only lets a user change their row.
       A username already taken by someone else surfaces as a 409 through
       the unique index on profiles.username.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select

from devconnect.database import Store
from devconnect.dependencies import AuthenticatedUser
from devconnect.exceptions import NotFoundError
from devconnect.models import Profile
from devconnect.pagination import resolve_window
from devconnect.schemas.profile import ProfileResponse, ProfileStats
from devconnect.services.base import ServiceResult, like_pattern, service_operation

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "full_name",
    "username",
    "bio",
    "avatar_url",
    "website",
    "github_url",
    "linkedin_url",
)
ACTIVE_WINDOW_DAYS = 30


def _search_filter(term: str):
    pattern = like_pattern(term.strip())
    return or_(
        Profile.full_name.ilike(pattern, escape="\\"),
        Profile.username.ilike(pattern, escape="\\"),
    )


class ProfileService:

    def __init__(self, store: Store):
        self._store = store

    @service_operation("list_profiles")
    async def list_profiles(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        page: Optional[int] = None,
    ) -> ServiceResult[List[ProfileResponse]]:
        window = resolve_window(page=page, limit=limit, offset=offset)
        filters = [_search_filter(search)] if search and search.strip() else []

        async with self._store.anonymous() as session:
            total = await session.scalar(
                select(func.count()).select_from(Profile).where(*filters)
            )
            profiles = await session.scalars(
                select(Profile)
                .where(*filters)
                .order_by(Profile.created_at.desc(), Profile.id)
                .limit(window.limit)
                .offset(window.offset)
            )
            data = [ProfileResponse.model_validate(p) for p in profiles.all()]

        return ServiceResult.ok(data, total=total or 0, has_more=window.has_more(total or 0))

    @service_operation("search_profiles")
    async def search_profiles(
        self,
        query: Optional[str],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ServiceResult[List[ProfileResponse]]:
        """Name/username match, newest first. A blank query matches nobody."""
        if not query or not query.strip():
            return ServiceResult.ok([], total=0, has_more=False)

        window = resolve_window(page=page, limit=limit)
        condition = _search_filter(query)
        async with self._store.anonymous() as session:
            total = await session.scalar(
                select(func.count()).select_from(Profile).where(condition)
            )
            profiles = await session.scalars(
                select(Profile)
                .where(condition)
                .order_by(Profile.created_at.desc(), Profile.id)
                .limit(window.limit)
                .offset(window.offset)
            )
            data = [ProfileResponse.model_validate(p) for p in profiles.all()]

        return ServiceResult.ok(data, total=total or 0, has_more=window.has_more(total or 0))

    @service_operation("get_profile")
    async def get_profile(self, profile_id: uuid.UUID) -> ServiceResult[ProfileResponse]:
        async with self._store.anonymous() as session:
            profile = await session.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        return ServiceResult.ok(ProfileResponse.model_validate(profile))

    @service_operation("get_stats")
    async def get_stats(self, now: Optional[datetime] = None) -> ServiceResult[ProfileStats]:
        """
        total_profiles:          every profile
        active_profiles:         updated within the last 30 days
        new_profiles_this_month: created since the first of the month (UTC)
        """
        now = now or datetime.now(timezone.utc)
        active_since = now - timedelta(days=ACTIVE_WINDOW_DAYS)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        count = select(func.count()).select_from(Profile)
        async with self._store.anonymous() as session:
            total = await session.scalar(count)
            active = await session.scalar(count.where(Profile.updated_at >= active_since))
            new = await session.scalar(count.where(Profile.created_at >= month_start))

        return ServiceResult.ok(
            ProfileStats(
                total_profiles=total or 0,
                active_profiles=active or 0,
                new_profiles_this_month=new or 0,
            )
        )

    @service_operation("update_profile")
    async def update_profile(
        self, user: AuthenticatedUser, data: Dict[str, Any]
    ) -> ServiceResult[ProfileResponse]:
        changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}

        async with self._store.scoped(user) as session:
            profile = await session.get(Profile, user.id)
            if profile is None:
                raise NotFoundError("Profile", user.id)
            for key, value in changes.items():
                setattr(profile, key, value)
            await session.flush()
            await session.refresh(profile)

        logger.info("Profile %s updated (%s)", user.id, ", ".join(sorted(changes)) or "no fields")
        return ServiceResult.ok(ProfileResponse.model_validate(profile))
