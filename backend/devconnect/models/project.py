"""
DevConnect Backend: Project Model
===================================

What:  A portfolio project owned by one profile.
Invariant: only the author (author_id) may update or delete it. The service
layer checks ownership first; the `projects_owner_write` RLS policy is the
second line.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from devconnect.database import Base
from devconnect.models.profile import utcnow

# text[] on PostgreSQL, JSON elsewhere (SQLite in tests)
TechStackType = JSON().with_variant(postgresql.ARRAY(String(50)), "postgresql")


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    demo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    github_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tech_stack: Mapped[List[str]] = mapped_column(TechStackType, nullable=False, default=list)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_id: Mapped[uuid.UUID] = mapped_column(
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
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_projects_created_at", created_at.desc()),
        Index("idx_projects_author_id", author_id),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', author_id={self.author_id})>"
