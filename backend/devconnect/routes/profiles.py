"""
DevConnect Backend: Profile Route Handlers
============================================

What:  /api/profiles: the public developer directory and self-service
       profile editing.

`/search` and `/stats` are declared before `/{id}` so neither is captured as an id.
"""

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends

from devconnect.dependencies import AuthenticatedUser, get_profile_service, require_user
from devconnect.pagination import resolve_window
from devconnect.responses import json_response, paginated_envelope, success_envelope
from devconnect.services.profile_service import ProfileService
from devconnect.validation import validate_body, validate_params, validate_query

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


@router.get("", summary="List or search developer profiles")
async def list_profiles(
    query: Dict[str, Any] = Depends(validate_query("ProfileListQuery")),
    service: ProfileService = Depends(get_profile_service),
):
    window = resolve_window(query.get("page"), query.get("limit"), query.get("offset"))
    result = await service.list_profiles(
        search=query.get("search"),
        limit=window.limit,
        offset=window.offset,
    )
    profiles = result.unwrap()
    return json_response(paginated_envelope(profiles, window.page, window.limit, result.total))


@router.get("/search", summary="Search profiles by name or username")
async def search_profiles(
    query: Dict[str, Any] = Depends(validate_query("PaginationQuery")),
    service: ProfileService = Depends(get_profile_service),
):
    window = resolve_window(query.get("page"), query.get("limit"))
    result = await service.search_profiles(query.get("search"), page=window.page, limit=window.limit)
    profiles = result.unwrap()
    return json_response(paginated_envelope(profiles, window.page, window.limit, result.total))


@router.get("/stats", summary="Profile counts")
async def profile_stats(service: ProfileService = Depends(get_profile_service)):
    stats = (await service.get_stats()).unwrap()
    return json_response(success_envelope({"stats": stats}, "Profile statistics retrieved"))


@router.put("/me", summary="Update your own profile")
async def update_my_profile(
    user: AuthenticatedUser = Depends(require_user),
    body: Dict[str, Any] = Depends(validate_body("ProfileUpdate")),
    service: ProfileService = Depends(get_profile_service),
):
    profile = (await service.update_profile(user, body)).unwrap()
    return json_response(success_envelope({"profile": profile}, "Profile updated successfully"))


@router.get("/{id}", summary="Get a profile by id")
async def get_profile(
    params: Dict[str, Any] = Depends(validate_params("IdParam")),
    service: ProfileService = Depends(get_profile_service),
):
    profile = (await service.get_profile(uuid.UUID(params["id"]))).unwrap()
    return json_response(success_envelope({"profile": profile}, "Profile retrieved successfully"))
