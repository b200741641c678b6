"""
DevConnect Backend: ORM Models
================================

Tables mirror the hosted database schema (see alembic/versions). The models
use portable column types so the same metadata also runs on SQLite in tests.
"""

from devconnect.models.comment import Comment, CommentLike
from devconnect.models.profile import Profile
from devconnect.models.project import Project

__all__ = ["Comment", "CommentLike", "Profile", "Project"]
