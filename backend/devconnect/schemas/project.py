"""
DevConnect Backend: Project Response Models
=============================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from devconnect.schemas.common import AuthorSummary


class ProjectResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    demo_url: Optional[str] = None
    github_url: Optional[str] = None
    tech_stack: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    author_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    author: Optional[AuthorSummary] = None

    model_config = {"from_attributes": True}


class OwnershipCheck(BaseModel):
    is_owner: bool
    owner_id: uuid.UUID
