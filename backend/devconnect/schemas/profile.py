"""
DevConnect Backend: Profile Response Models
=============================================
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    id: uuid.UUID
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    website: Optional[str] = None
    bio: Optional[str] = None
    github_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    role: str = "user"
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileStats(BaseModel):
    total_profiles: int
    active_profiles: int
    new_profiles_this_month: int
