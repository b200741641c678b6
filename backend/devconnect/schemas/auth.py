"""
DevConnect Backend: Auth Response Models
==========================================

Shapes returned by /api/auth/*. Token values come straight from the hosted
auth service; this backend never mints tokens itself.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from devconnect.schemas.profile import ProfileResponse


class SessionTokens(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = Field(default=None, description="Unix time the access token expires")


class AuthUser(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    created_at: Optional[datetime] = None
    profile: Optional[ProfileResponse] = None

    @classmethod
    def from_auth_payload(cls, payload: Dict[str, Any]) -> "AuthUser":
        """Build from the auth service's user object (metadata lives in user_metadata)."""
        metadata = payload.get("user_metadata") or {}
        return cls(
            id=payload["id"],
            email=payload.get("email"),
            full_name=metadata.get("full_name"),
            username=metadata.get("username"),
            created_at=payload.get("created_at"),
        )


class AuthSession(BaseModel):
    user: AuthUser
    session: Optional[SessionTokens] = None
