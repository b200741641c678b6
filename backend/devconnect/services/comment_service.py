"""
DevConnect Backend: Comment Service
=====================================

What:  Threaded comments on projects: top-level listing, creation, replies,
       and the like toggle (delegated to LikeAggregator).
How:   Listings select comments joined to their author's profile and attach
       the author projection. When the caller is known, `is_liked` is
       resolved with one extra membership query per page.

Threading:
    A top-level comment has parent_id NULL and belongs to a project.
    A reply has parent_id set and inherits the parent's project_id.
    create_reply() inserts the reply and bumps the parent's replies_count
    by a relative update in the same transaction, so the counter always
    equals the number of rows pointing at the parent.

Sort orders for list_project_comments:
    newest   created_at DESC (default)
    oldest   created_at ASC
    popular  likes_count DESC, newest first among ties
"""

import logging
import uuid
from typing import Iterable, List, Optional, Set

from sqlalchemy import func, select, update

from devconnect.database import Store
from devconnect.dependencies import AuthenticatedUser
from devconnect.exceptions import NotFoundError, ValidationError
from devconnect.models import Comment, CommentLike, Profile, Project
from devconnect.models.comment import MAX_COMMENT_LENGTH
from devconnect.pagination import resolve_window
from devconnect.schemas.comment import CommentResponse, LikeState
from devconnect.services.base import ServiceResult, author_summary, service_operation
from devconnect.services.like_service import LikeAggregator

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "newest": (Comment.created_at.desc(),),
    "oldest": (Comment.created_at.asc(),),
    "popular": (Comment.likes_count.desc(), Comment.created_at.desc()),
}
DEFAULT_REPLIES_LIMIT = 5


def clean_content(content: Optional[str]) -> str:
    """Trim and bound-check comment text; raises ValidationError."""
    text = (content or "").strip()
    if not text:
        raise ValidationError("Invalid comment", {"content": "must not be empty"})
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            "Invalid comment",
            {"content": f"must NOT have more than {MAX_COMMENT_LENGTH} characters"},
        )
    return text


def _to_response(comment: Comment, profile: Optional[Profile], is_liked: bool = False) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        project_id=comment.project_id,
        parent_id=comment.parent_id,
        author_id=comment.author_id,
        likes_count=comment.likes_count,
        replies_count=comment.replies_count,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        author=author_summary(comment.author_id, profile),
        is_liked=is_liked,
    )


class CommentService:

    def __init__(self, store: Store, likes: Optional[LikeAggregator] = None):
        self._store = store
        self._likes = likes or LikeAggregator(store)

    # ── Reads ─────────────────────────────────────────────────────────────

    @service_operation("list_project_comments")
    async def list_project_comments(
        self,
        project_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort: str = "newest",
        viewer: Optional[AuthenticatedUser] = None,
    ) -> ServiceResult[List[CommentResponse]]:
        window = resolve_window(page=page, limit=limit)
        order_by = SORT_ORDERS.get(sort, SORT_ORDERS["newest"])
        filters = [Comment.project_id == project_id, Comment.parent_id.is_(None)]

        async with self._store.anonymous() as session:
            total = await session.scalar(
                select(func.count()).select_from(Comment).where(*filters)
            )
            result = await session.execute(
                select(Comment, Profile)
                .outerjoin(Profile, Profile.id == Comment.author_id)
                .where(*filters)
                .order_by(*order_by, Comment.id)
                .limit(window.limit)
                .offset(window.offset)
            )
            rows = [(row.Comment, row.Profile) for row in result.all()]
            liked = await self._liked_ids(session, viewer, (c.id for c, _ in rows))

        return ServiceResult.ok(
            [_to_response(c, p, c.id in liked) for c, p in rows],
            total=total or 0,
            has_more=window.has_more(total or 0),
        )

    @service_operation("list_replies")
    async def list_replies(
        self,
        comment_id: uuid.UUID,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        viewer: Optional[AuthenticatedUser] = None,
    ) -> ServiceResult[List[CommentResponse]]:
        window = resolve_window(page=page, limit=limit, default_limit=DEFAULT_REPLIES_LIMIT)

        async with self._store.anonymous() as session:
            parent = await session.scalar(select(Comment.id).where(Comment.id == comment_id))
            if parent is None:
                raise NotFoundError("Comment", comment_id)

            filters = [Comment.parent_id == comment_id]
            total = await session.scalar(
                select(func.count()).select_from(Comment).where(*filters)
            )
            result = await session.execute(
                select(Comment, Profile)
                .outerjoin(Profile, Profile.id == Comment.author_id)
                .where(*filters)
                .order_by(Comment.created_at.asc(), Comment.id)
                .limit(window.limit)
                .offset(window.offset)
            )
            rows = [(row.Comment, row.Profile) for row in result.all()]
            liked = await self._liked_ids(session, viewer, (c.id for c, _ in rows))

        return ServiceResult.ok(
            [_to_response(c, p, c.id in liked) for c, p in rows],
            total=total or 0,
            has_more=window.has_more(total or 0),
        )

    # ── Mutations ─────────────────────────────────────────────────────────

    @service_operation("create_comment")
    async def create_comment(
        self, user: AuthenticatedUser, project_id: uuid.UUID, content: str
    ) -> ServiceResult[CommentResponse]:
        text = clean_content(content)

        async with self._store.scoped(user) as session:
            project = await session.scalar(select(Project.id).where(Project.id == project_id))
            if project is None:
                raise NotFoundError("Project", project_id)

            comment = Comment(project_id=project_id, author_id=user.id, content=text)
            session.add(comment)
            await session.flush()
            await session.refresh(comment)
            profile = await session.get(Profile, user.id)

        logger.info("Comment %s created on project %s by %s", comment.id, project_id, user.id)
        return ServiceResult.ok(_to_response(comment, profile))

    @service_operation("create_reply")
    async def create_reply(
        self, user: AuthenticatedUser, comment_id: uuid.UUID, content: str
    ) -> ServiceResult[CommentResponse]:
        text = clean_content(content)

        async with self._store.scoped(user) as session:
            parent_project = await session.scalar(
                select(Comment.project_id).where(Comment.id == comment_id)
            )
            if parent_project is None:
                raise NotFoundError("Comment", comment_id)

            reply = Comment(
                project_id=parent_project,
                parent_id=comment_id,
                author_id=user.id,
                content=text,
            )
            session.add(reply)
            await session.flush()
            await session.execute(
                update(Comment)
                .where(Comment.id == comment_id)
                .values(replies_count=Comment.replies_count + 1)
                .execution_options(synchronize_session=False)
            )
            await session.refresh(reply)
            profile = await session.get(Profile, user.id)

        logger.info("Reply %s created under comment %s by %s", reply.id, comment_id, user.id)
        return ServiceResult.ok(_to_response(reply, profile))

    async def toggle_like(
        self, user: AuthenticatedUser, comment_id: uuid.UUID
    ) -> ServiceResult[LikeState]:
        return await self._likes.toggle_like(comment_id, user)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _liked_ids(
        self,
        session,
        viewer: Optional[AuthenticatedUser],
        comment_ids: Iterable[uuid.UUID],
    ) -> Set[uuid.UUID]:
        ids = list(comment_ids)
        if viewer is None or not ids:
            return set()
        result = await session.scalars(
            select(CommentLike.comment_id).where(
                CommentLike.user_id == viewer.id,
                CommentLike.comment_id.in_(ids),
            )
        )
        return set(result.all())
