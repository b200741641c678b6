"""
DevConnect Backend: Comment & Like Models
===========================================

What:  Threaded comments on projects, and the like-membership table.

Denormalized counters on `comments`:
    likes_count   == number of comment_likes rows for the comment
    replies_count == number of comments whose parent_id is the comment

Both are only ever changed with relative updates (`likes_count + 1`) inside
the same transaction as the membership / reply insert, never read-modify-write.

comment_likes is a membership set: UNIQUE(comment_id, user_id). Toggling is
the only mutation (insert on like, delete on unlike).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from devconnect.database import Base
from devconnect.models.profile import utcnow

MAX_COMMENT_LENGTH = 2000


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    likes_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    replies_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_comments_likes_count_non_negative"),
        CheckConstraint("replies_count >= 0", name="ck_comments_replies_count_non_negative"),
        CheckConstraint(
            f"length(content) between 1 and {MAX_COMMENT_LENGTH}",
            name="ck_comments_content_length",
        ),
        Index("idx_comments_project_created", project_id, created_at.desc()),
        Index("idx_comments_parent_id", parent_id),
    )

    def __repr__(self) -> str:
        return (
            f"<Comment(id={self.id}, project_id={self.project_id}, "
            f"likes={self.likes_count}, replies={self.replies_count})>"
        )


class CommentLike(Base):
    __tablename__ = "comment_likes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_likes_comment_user"),
    )
