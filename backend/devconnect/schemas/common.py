"""
DevConnect Backend: Shared Response Models
============================================
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class AuthorSummary(BaseModel):
    """
    Nested author projection attached to projects and comments.

    `username` is never empty: see services.base.display_username for the
    fallback order.
    """
    id: uuid.UUID
    username: str
    avatar_url: Optional[str] = None
    full_name: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(description="healthy | degraded | unhealthy")
    version: str
    database: str = Field(description="connected | disconnected")
    auth_service: str = Field(description="available | unavailable")
    uptime_seconds: float
