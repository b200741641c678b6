"""
DevConnect Backend: Like Aggregator
=====================================

What:  Toggles a user's like on a comment and keeps `comments.likes_count`
       equal to the number of `comment_likes` rows for that comment.
How:   One scoped transaction per toggle:
           1. the comment must exist (404 otherwise)
           2. membership lookup for (comment_id, user_id)
           3. delete + `likes_count - 1`, or insert + `likes_count + 1`
           4. re-read the counter the store now holds
       The counter update is a relative SQL expression, so concurrent
       toggles by different users never overwrite each other.

Duplicate clicks: two concurrent "like" requests from the same user both
see no membership and both insert. The UNIQUE(comment_id, user_id)
constraint rejects the second insert, its transaction (counter bump
included) rolls back, and the caller gets a 409 ConflictError.
"""

import logging
import uuid

from sqlalchemy import delete, select, update

from devconnect.database import Store
from devconnect.dependencies import AuthenticatedUser
from devconnect.exceptions import NotFoundError
from devconnect.models import Comment, CommentLike
from devconnect.schemas.comment import LikeState
from devconnect.services.base import ServiceResult, service_operation

logger = logging.getLogger(__name__)


class LikeAggregator:

    def __init__(self, store: Store):
        self._store = store

    @service_operation("toggle_like")
    async def toggle_like(
        self, comment_id: uuid.UUID, user: AuthenticatedUser
    ) -> ServiceResult[LikeState]:
        async with self._store.scoped(user) as session:
            found = await session.scalar(select(Comment.id).where(Comment.id == comment_id))
            if found is None:
                raise NotFoundError("Comment", comment_id)

            membership_id = await session.scalar(
                select(CommentLike.id).where(
                    CommentLike.comment_id == comment_id,
                    CommentLike.user_id == user.id,
                )
            )

            if membership_id is not None:
                await session.execute(delete(CommentLike).where(CommentLike.id == membership_id))
                delta = -1
            else:
                session.add(CommentLike(comment_id=comment_id, user_id=user.id))
                # Surface a unique violation before the counter moves
                await session.flush()
                delta = 1

            await session.execute(
                update(Comment)
                .where(Comment.id == comment_id)
                .values(likes_count=Comment.likes_count + delta)
                .execution_options(synchronize_session=False)
            )
            likes_count = await session.scalar(
                select(Comment.likes_count).where(Comment.id == comment_id)
            )

        is_liked = delta > 0
        logger.info(
            "User %s %s comment %s (likes=%d)",
            user.id,
            "liked" if is_liked else "unliked",
            comment_id,
            likes_count,
        )
        return ServiceResult.ok(LikeState(likes_count=likes_count, is_liked=is_liked))
