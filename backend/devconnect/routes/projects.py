"""
DevConnect Backend: Project Route Handlers
============================================

What:  /api/projects: public listing and detail, authenticated create, and
       owner-only update and delete.
How:   Validator dependencies check params, query and body against the
       registered JSON schemas; the service result is unwrapped (raising the
       typed error) and wrapped in the standard envelope.

Dependency order on protected routes: require_user, then params, then body.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends

from devconnect.dependencies import AuthenticatedUser, get_project_service, require_user
from devconnect.pagination import resolve_window
from devconnect.responses import json_response, paginated_envelope, success_envelope
from devconnect.services.project_service import ProjectService
from devconnect.validation import validate_body, validate_params, validate_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.get("", summary="List projects, newest first")
async def list_projects(
    query: Dict[str, Any] = Depends(validate_query("ProjectListQuery")),
    service: ProjectService = Depends(get_project_service),
):
    """
    Supports `page` or an explicit `offset`, `limit` (clamped to 1-100) and a
    `search` term matched against title and description.
    """
    window = resolve_window(query.get("page"), query.get("limit"), query.get("offset"))
    result = await service.list_projects(
        page=window.page,
        limit=window.limit,
        offset=window.offset,
        search=query.get("search"),
    )
    projects = result.unwrap()
    return json_response(paginated_envelope(projects, window.page, window.limit, result.total))


@router.get("/user/{userId}", summary="List one user's projects")
async def list_user_projects(
    params: Dict[str, Any] = Depends(validate_params("UserIdParam")),
    query: Dict[str, Any] = Depends(validate_query("UserProjectsQuery")),
    service: ProjectService = Depends(get_project_service),
):
    window = resolve_window(limit=query.get("limit"), offset=query.get("offset", 0))
    result = await service.list_user_projects(
        uuid.UUID(params["userId"]),
        limit=window.limit,
        offset=window.offset,
    )
    projects = result.unwrap()
    return json_response(paginated_envelope(projects, window.page, window.limit, result.total))


@router.get("/{id}", summary="Get a project by id")
async def get_project(
    params: Dict[str, Any] = Depends(validate_params("IdParam")),
    service: ProjectService = Depends(get_project_service),
):
    project = (await service.get_project(uuid.UUID(params["id"]))).unwrap()
    return json_response(success_envelope({"project": project}, "Project retrieved successfully"))


@router.post("", status_code=201, summary="Create a project")
async def create_project(
    user: AuthenticatedUser = Depends(require_user),
    body: Dict[str, Any] = Depends(validate_body("ProjectCreate")),
    service: ProjectService = Depends(get_project_service),
):
    project = (await service.create_project(user, body)).unwrap()
    return json_response(
        success_envelope({"project": project}, "Project created successfully"),
        status_code=201,
    )


@router.put("/{id}", summary="Update your own project")
async def update_project(
    user: AuthenticatedUser = Depends(require_user),
    params: Dict[str, Any] = Depends(validate_params("IdParam")),
    body: Dict[str, Any] = Depends(validate_body("ProjectUpdate")),
    service: ProjectService = Depends(get_project_service),
):
    project = (await service.update_project(user, uuid.UUID(params["id"]), body)).unwrap()
    return json_response(success_envelope({"project": project}, "Project updated successfully"))


@router.delete("/{id}", summary="Delete your own project")
async def delete_project(
    user: AuthenticatedUser = Depends(require_user),
    params: Dict[str, Any] = Depends(validate_params("IdParam")),
    service: ProjectService = Depends(get_project_service),
):
    (await service.delete_project(user, uuid.UUID(params["id"]))).unwrap()
    return json_response(success_envelope(message="Project deleted successfully"))
