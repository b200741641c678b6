"""
DevConnect Backend: Project Service
=====================================

What:  CRUD over portfolio projects, each enriched with its author.
How:   Reads use the anonymous store session; create/update/delete use the
       caller-scoped one. Ownership is checked here, before any mutation,
       and the RLS policy on `projects` repeats the check in the database.
Who:   routes/projects.py via dependencies.get_project_service.

Every public method returns a ServiceResult; see services/base.py.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.database import Store
from devconnect.dependencies import AuthenticatedUser
from devconnect.exceptions import AuthorizationError, NotFoundError
from devconnect.models import Profile, Project
from devconnect.pagination import resolve_window
from devconnect.schemas.project import OwnershipCheck, ProjectResponse
from devconnect.services.base import (
    ServiceResult,
    author_summary,
    like_pattern,
    service_operation,
)

logger = logging.getLogger(__name__)

# Columns a client may set; anything else in the payload is ignored.
WRITABLE_FIELDS = ("title", "description", "demo_url", "github_url", "tech_stack", "image_url")


def _to_response(project: Project, profile: Optional[Profile]) -> ProjectResponse:
    return ProjectResponse.model_validate(project).model_copy(
        update={"author": author_summary(project.author_id, profile)}
    )


def _writable(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: data[key] for key in WRITABLE_FIELDS if key in data}


class ProjectService:
    """
    Responsibilities:
        - list_projects() / list_user_projects(): paginated listings, newest first
        - get_project(): single project, 404 on a miss
        - create / update / delete: mutations as the caller
        - check_ownership(): whether a user authored a project
    """

    def __init__(self, store: Store):
        self._store = store

    # ── Reads ─────────────────────────────────────────────────────────────

    @service_operation("list_projects")
    async def list_projects(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        search: Optional[str] = None,
    ) -> ServiceResult[List[ProjectResponse]]:
        window = resolve_window(page=page, limit=limit, offset=offset)

        filters = []
        if search and search.strip():
            pattern = like_pattern(search.strip())
            filters.append(
                or_(
                    Project.title.ilike(pattern, escape="\\"),
                    Project.description.ilike(pattern, escape="\\"),
                )
            )

        async with self._store.anonymous() as session:
            total = await session.scalar(
                select(func.count()).select_from(Project).where(*filters)
            )
            rows = await self._fetch_with_authors(
                session,
                filters,
                limit=window.limit,
                offset=window.offset,
            )

        return ServiceResult.ok(
            [_to_response(project, profile) for project, profile in rows],
            total=total or 0,
            has_more=window.has_more(total or 0),
        )

    @service_operation("list_user_projects")
    async def list_user_projects(
        self,
        user_id: uuid.UUID,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ServiceResult[List[ProjectResponse]]:
        window = resolve_window(limit=limit, offset=offset or 0)
        filters = [Project.author_id == user_id]

        async with self._store.anonymous() as session:
            total = await session.scalar(
                select(func.count()).select_from(Project).where(*filters)
            )
            rows = await self._fetch_with_authors(
                session,
                filters,
                limit=window.limit,
                offset=window.offset,
            )

        return ServiceResult.ok(
            [_to_response(project, profile) for project, profile in rows],
            total=total or 0,
            has_more=window.has_more(total or 0),
        )

    @service_operation("get_project")
    async def get_project(self, project_id: uuid.UUID) -> ServiceResult[ProjectResponse]:
        async with self._store.anonymous() as session:
            rows = await self._fetch_with_authors(session, [Project.id == project_id], limit=1)
        if not rows:
            raise NotFoundError("Project", project_id)
        project, profile = rows[0]
        return ServiceResult.ok(_to_response(project, profile))

    @service_operation("check_ownership")
    async def check_ownership(
        self, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> ServiceResult[OwnershipCheck]:
        async with self._store.anonymous() as session:
            owner_id = await session.scalar(
                select(Project.author_id).where(Project.id == project_id)
            )
        if owner_id is None:
            raise NotFoundError("Project", project_id)
        return ServiceResult.ok(OwnershipCheck(is_owner=owner_id == user_id, owner_id=owner_id))

    # ── Mutations ─────────────────────────────────────────────────────────

    @service_operation("create_project")
    async def create_project(
        self, user: AuthenticatedUser, data: Dict[str, Any]
    ) -> ServiceResult[ProjectResponse]:
        async with self._store.scoped(user) as session:
            project = Project(author_id=user.id, **_writable(data))
            project.tech_stack = list(project.tech_stack or [])
            session.add(project)
            await session.flush()
            await session.refresh(project)
            profile = await session.get(Profile, user.id)

        logger.info("Project %s created by %s", project.id, user.id)
        return ServiceResult.ok(_to_response(project, profile))

    @service_operation("update_project")
    async def update_project(
        self, user: AuthenticatedUser, project_id: uuid.UUID, data: Dict[str, Any]
    ) -> ServiceResult[ProjectResponse]:
        async with self._store.scoped(user) as session:
            project = await self._owned_project(session, project_id, user, "edit")
            for key, value in _writable(data).items():
                setattr(project, key, value)
            await session.flush()
            await session.refresh(project)
            profile = await session.get(Profile, project.author_id)

        logger.info("Project %s updated by %s", project_id, user.id)
        return ServiceResult.ok(_to_response(project, profile))

    @service_operation("delete_project")
    async def delete_project(
        self, user: AuthenticatedUser, project_id: uuid.UUID
    ) -> ServiceResult[None]:
        async with self._store.scoped(user) as session:
            project = await self._owned_project(session, project_id, user, "delete")
            await session.delete(project)

        logger.info("Project %s deleted by %s", project_id, user.id)
        return ServiceResult.ok()

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _owned_project(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        user: AuthenticatedUser,
        action: str,
    ) -> Project:
        project = await session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        if project.author_id != user.id:
            logger.warning(
                "User %s tried to %s project %s owned by %s",
                user.id,
                action,
                project_id,
                project.author_id,
            )
            raise AuthorizationError(f"You can only {action} your own projects")
        return project

    async def _fetch_with_authors(
        self,
        session: AsyncSession,
        filters: list,
        limit: int,
        offset: int = 0,
    ) -> List[Tuple[Project, Optional[Profile]]]:
        stmt = (
            select(Project, Profile)
            .outerjoin(Profile, Profile.id == Project.author_id)
            .where(*filters)
            .order_by(Project.created_at.desc(), Project.id)
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return [(row.Project, row.Profile) for row in result.all()]
