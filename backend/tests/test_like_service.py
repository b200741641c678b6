"""
DevConnect Backend: Like Aggregator Tests
===========================================

What we test:
    ✅ Double toggle from zero: (liked, 1) then (not liked, 0)
    ✅ Counter equals membership rows across several users
    ✅ Missing comment yields NotFoundError without side effects
    ✅ A duplicate membership is rejected and its counter bump rolled back
"""

import uuid

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from devconnect.exceptions import ConflictError, NotFoundError, translate_error
from devconnect.models import Comment, CommentLike
from devconnect.services.like_service import LikeAggregator


async def _comment(seed):
    author = await seed.profile(username="author")
    project = await seed.project(author.id)
    return await seed.comment(author.id, project.id)


class TestToggleLike:

    @pytest.mark.asyncio
    async def test_double_toggle_restores_state(self, store, seed, make_user):
        comment = await _comment(seed)
        user = make_user()
        await seed.profile(id=user.id, username="liker")
        aggregator = LikeAggregator(store)

        first = await aggregator.toggle_like(comment.id, user)
        assert first.success
        assert (first.data.is_liked, first.data.likes_count) == (True, 1)

        second = await aggregator.toggle_like(comment.id, user)
        assert second.success
        assert (second.data.is_liked, second.data.likes_count) == (False, 0)

        assert await seed.like_rows(comment.id) == []
        assert (await seed.get(Comment, comment.id)).likes_count == 0

    @pytest.mark.asyncio
    async def test_counter_matches_membership_for_many_users(self, store, seed, make_user):
        comment = await _comment(seed)
        aggregator = LikeAggregator(store)
        users = [make_user() for _ in range(4)]
        for user in users:
            await seed.profile(id=user.id)
            await aggregator.toggle_like(comment.id, user)

        # One user changes their mind
        result = await aggregator.toggle_like(comment.id, users[0])
        assert result.data.likes_count == 3

        rows = await seed.like_rows(comment.id)
        stored = await seed.get(Comment, comment.id)
        assert stored.likes_count == len(rows) == 3
        assert {row.user_id for row in rows} == {u.id for u in users[1:]}

    @pytest.mark.asyncio
    async def test_unknown_comment(self, store, make_user):
        result = await LikeAggregator(store).toggle_like(uuid.uuid4(), make_user())
        assert not result.success
        assert isinstance(result.error, NotFoundError)
        with pytest.raises(NotFoundError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_duplicate_membership_rolls_back_counter(self, store, seed, make_user):
        comment = await _comment(seed)
        user = make_user()
        await LikeAggregator(store).toggle_like(comment.id, user)

        # What a racing second "like" would do: insert again and bump the counter
        with pytest.raises(IntegrityError) as exc_info:
            async with store.scoped(user) as session:
                await session.execute(
                    update(Comment)
                    .where(Comment.id == comment.id)
                    .values(likes_count=Comment.likes_count + 1)
                )
                session.add(CommentLike(comment_id=comment.id, user_id=user.id))
                await session.flush()

        assert isinstance(translate_error(exc_info.value), ConflictError)
        assert (await seed.get(Comment, comment.id)).likes_count == 1
        assert len(await seed.like_rows(comment.id)) == 1
