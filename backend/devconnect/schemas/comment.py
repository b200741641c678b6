"""
DevConnect Backend: Comment Response Models
=============================================
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from devconnect.schemas.common import AuthorSummary


class CommentResponse(BaseModel):
    """
    A comment enriched with its author.

    is_liked: whether the requesting user has liked the comment. Listing is
    public, so it is False unless the caller is known.
    """
    id: uuid.UUID
    content: str
    project_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    author_id: uuid.UUID
    likes_count: int = 0
    replies_count: int = 0
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary
    is_liked: bool = False

    model_config = {"from_attributes": True}


class LikeState(BaseModel):
    """Result of a like toggle; likes_count is re-read from the store."""
    likes_count: int
    is_liked: bool
